"""
Aggregation package for engagement profiles.

Turns a bounded window of real messages into an ActivityProfile.
"""

from .service import (
    AggregationError,
    MessageAggregationService,
    classify_message,
    longest_daily_streak,
    message_aggregation_service,
)

__all__ = [
    "AggregationError",
    "MessageAggregationService",
    "classify_message",
    "longest_daily_streak",
    "message_aggregation_service",
]
