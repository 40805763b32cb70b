"""Team hierarchy, invitation migration and budget ledger service."""

__version__ = "0.1.0"
