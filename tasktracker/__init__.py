"""Multi-user task tracker backend with live update push."""

__version__ = "1.0.0"
