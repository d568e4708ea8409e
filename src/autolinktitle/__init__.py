"""autolinktitle - turn pasted URLs into titled markdown links."""

__version__ = "0.3.0"
