"""HTTP server bootstrap: request logging, JSON errors and port fallback."""

__version__ = "0.1.0"
