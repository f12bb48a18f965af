"""Config package exporting loader helpers."""

from .loader import SUPPORTED_LOCALES, Locale, Settings, load_settings

__all__ = ["Locale", "Settings", "load_settings", "SUPPORTED_LOCALES"]
