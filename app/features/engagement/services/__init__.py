from .engine import EngagementEngine

__all__ = ["EngagementEngine"]
