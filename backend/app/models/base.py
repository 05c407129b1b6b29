"""
Declarative base shared by all models, plus column helpers.
"""
import enum
from datetime import datetime, timezone
from typing import Type

from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def enum_type(enum_cls: Type[enum.Enum], name: str) -> SQLEnum:
    """
    Enum column type that stores the enum *values* ("processing"),
    not the member names ("PROCESSING").
    """
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
