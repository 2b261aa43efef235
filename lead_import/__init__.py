"""Bulk CSV lead import: column mapping, row validation, bulk insert, reporting."""

__version__ = "0.1.0"
