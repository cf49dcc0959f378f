"""Leader election helper built on Azure Blob Storage blob leases."""

__version__ = "1.0.0"

__all__ = ["__version__"]
