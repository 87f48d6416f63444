"""Screenshot capture and verification helpers for terminal UIs on macOS."""

__version__ = "0.1.0"
