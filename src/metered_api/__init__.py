"""Credit-metered items API."""

__version__ = "0.1.0"
