"""CivicGo report intake: photo classification and proof-of-report records."""

__version__ = "0.1.0"
