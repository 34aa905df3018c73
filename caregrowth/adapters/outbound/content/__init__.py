"""Content acquisition adapters."""

from .google_export_adapter import GoogleExportAdapter

__all__ = ["GoogleExportAdapter"]
