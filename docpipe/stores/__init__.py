"""Persistent stores used across pipeline runs."""

from .stats_store import StatsStore

__all__ = ["StatsStore"]
