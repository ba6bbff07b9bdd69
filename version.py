"""Package version for Thai Election 69 ballot forensics."""

__version__ = "0.3.0"
