"""Interview scheduling backend for the hirescore recruiting platform."""

__version__ = "0.1.0"
