"""
Base Domain Classes

This module provides the building blocks shared by the sync layer:
- ValueObject: Immutable objects compared by value
- ChangeEvent: A row-level change pushed by the realtime feed
- Result: Explicit success/failure value returned by remote operations
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, Optional, TypeVar
from uuid import UUID, uuid4

T = TypeVar('T')

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'
EVENT_TYPES = (INSERT, UPDATE, DELETE)


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class ChangeEvent:
    """
    Row-level change on a watched table

    ``new`` holds the row after an INSERT/UPDATE, ``old`` the row before
    an UPDATE/DELETE. Filters are evaluated against ``row``.
    """
    table: str
    event_type: str
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.event_type}")

    @property
    def row(self) -> Dict[str, Any]:
        """Row the event is about (the new image, or the old one on delete)"""
        return self.new or self.old

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.event_type,
            'table': self.table,
            'occurred_at': self.occurred_at.isoformat(),
            'new': self.new,
            'old': self.old,
        }


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a remote call

    Services return a Result instead of raising so the caller decides
    whether to surface the failure (user action) or fall back to a safe
    default (background sync).
    """
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> 'Result[T]':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the stored error"""
        if self.error is not None:
            raise self.error
        return self.value

    def unwrap_or(self, default: T) -> T:
        return default if self.error is not None else self.value
