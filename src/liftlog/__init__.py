"""liftlog: offline-first workout log with gist-based sync."""

__version__ = "0.1.0"
