"""Adapters package initialization."""
from serpavi.adapters.browser import BrowserSession, BrowserSettings
from serpavi.adapters.connectivity import ConnectivityProbe
from serpavi.adapters.form_controls import FieldLocator, FormControl, SelectControl, TextControl, ToggleControl

__all__ = [
    "BrowserSession",
    "BrowserSettings",
    "ConnectivityProbe",
    "FieldLocator",
    "FormControl",
    "SelectControl",
    "TextControl",
    "ToggleControl",
]
