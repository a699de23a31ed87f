"""Pipeline orchestration."""

from .insights_engine import InsightsEngine

__all__ = ["InsightsEngine"]
