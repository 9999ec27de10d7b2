"""Health metrics dashboard over an Apple Health export."""

__version__ = "0.1.0"
