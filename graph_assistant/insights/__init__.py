"""Meeting, email and document insights."""

from .aggregator import InsightAggregator
from .models import InsightCategory, InsightRecord, InsightType, TimeRange

__all__ = ["InsightAggregator", "InsightCategory", "InsightRecord", "InsightType", "TimeRange"]
