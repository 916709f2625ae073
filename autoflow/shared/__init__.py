"""Shared utilities: enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from autoflow.shared.enums import ExecutionRunStatus
from autoflow.shared.utils import ensure_utc, generate_cuid, utc_now

__all__ = [
    "ExecutionRunStatus",
    "generate_cuid",
    "utc_now",
    "ensure_utc",
]
