"""Integration boundaries for the license service, OS and IDE installation."""

from . import ide_cache, ide_product, license_client, process_table

__all__ = ["ide_cache", "ide_product", "license_client", "process_table"]
