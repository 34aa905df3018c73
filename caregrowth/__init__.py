"""CareGrowth document search and Q&A service."""

__version__ = "1.0.0"
