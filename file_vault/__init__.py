"""File Vault Lite: a minimal HTTP file vault."""

__version__ = "1.0.0"
