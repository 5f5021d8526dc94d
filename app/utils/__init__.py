"""Utility functions."""

from app.utils.time import ensure_utc, utc_now

__all__ = ["utc_now", "ensure_utc"]
