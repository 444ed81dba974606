"""German A1 study guide for Arabic speakers."""

__version__ = "0.1.0"
