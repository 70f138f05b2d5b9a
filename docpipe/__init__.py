"""Documentation artifact pipeline: prebuilt page, synced docs and llms corpus."""

__version__ = "0.1.0"
