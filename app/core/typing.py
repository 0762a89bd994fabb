"""
Small typing and time helpers shared by the store and models.

At class level a SQLModel field such as `Message.status` is a SQLAlchemy
column attribute, but type checkers see the declared Python type and flag
`.asc()`, `.desc()` and comparisons in queries. `col()` restores the column
type for the checker.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from sqlalchemy.orm.attributes import InstrumentedAttribute

T = TypeVar("T")


def col(attr: T) -> "InstrumentedAttribute[T]":
    """
    Mark a model attribute as a column for query building. Returns it unchanged.

    Usage:
        select(Message).order_by(col(Message.created_at).asc())
    """
    return attr  # type: ignore[return-value]


def utc_now() -> datetime:
    """Timezone-aware now in UTC; used as a field default_factory."""
    return datetime.now(timezone.utc)


def safe_getattr(obj: Any, name: str, default: T = None) -> T:  # type: ignore[assignment]
    """getattr for attributes the type stubs don't declare, e.g. CursorResult.rowcount."""
    return getattr(obj, name, default)


__all__ = ["col", "utc_now", "safe_getattr"]
