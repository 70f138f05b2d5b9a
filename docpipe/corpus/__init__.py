"""Flattened documentation corpus for bulk ingestion."""

from .flattener import flatten, iter_entries, write_corpus
from .tree import ExclusionRule, build_rules, load_tree

__all__ = ["ExclusionRule", "build_rules", "flatten", "iter_entries", "load_tree", "write_corpus"]
