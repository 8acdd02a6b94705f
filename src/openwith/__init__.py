"""View and change the default application for file extensions on macOS."""

__version__ = "0.1.0"
