"""Prebuilt packages reference page."""

from .page import PrebuiltPageGenerator, format_downloads, sort_key

__all__ = ["PrebuiltPageGenerator", "format_downloads", "sort_key"]
