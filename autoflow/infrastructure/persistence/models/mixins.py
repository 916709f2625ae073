"""SQLAlchemy mixins for common model patterns.

Provides: CuidMixin, OrgMixin, TimestampMixin and the combined OrgScopedModel.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from autoflow.shared.utils.datetime import utc_now
from autoflow.shared.utils.generators import generate_cuid


class CuidMixin:
    """Mixin for models using CUID as primary key. Provides id with default generate_cuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class OrgMixin:
    """Mixin for organization-owned models. Organizations live outside this service, so no FK."""

    @declared_attr
    def org_id(cls) -> Mapped[str]:
        return mapped_column(String, nullable=False, index=True)


class TimestampMixin:
    """Mixin for created_at and updated_at (timezone-aware, set client-side and by server default)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            default=utc_now,
            server_default=func.now(),
            nullable=False,
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            default=utc_now,
            onupdate=utc_now,
            server_default=func.now(),
            nullable=False,
        )


class OrgScopedModel(CuidMixin, OrgMixin, TimestampMixin):
    """Combined mixin: CUID + org_id + created_at/updated_at."""

    __abstract__ = True
