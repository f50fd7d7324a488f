"""Asyncio fences, once-locks and lazy values, with their waker storage."""

__version__ = "0.3.0"
__all__ = ["fence", "lazy", "once", "queue"]