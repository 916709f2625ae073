"""Shared helpers: UTC datetimes and id generation."""

from autoflow.shared.utils.datetime import ensure_utc, utc_now
from autoflow.shared.utils.generators import generate_cuid

__all__ = ["utc_now", "ensure_utc", "generate_cuid"]
