"""Text post-processing applied to generated and synced documents."""

from .citations import strip_citations
from .markers import MarkerManager, Segment

__all__ = ["MarkerManager", "Segment", "strip_citations"]
