# bloodlink/db/models/db_base_model.py
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import DateTime, Enum as sqlalchemy_Enum
from datetime import datetime, timezone
from enum import Enum
from typing import Type
from uuid import uuid4


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def enum_values(enum_cls: Type[Enum]) -> list[str]:
    """Persist enum values ("checked_in") rather than member names."""
    return [member.value for member in enum_cls]


def string_enum(enum_cls: Type[Enum], name: str, length: int = 20) -> sqlalchemy_Enum:
    return sqlalchemy_Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=length,
        values_callable=enum_values,
    )

class DbBaseModel(DeclarativeBase):
    __abstract__ = True  # prevents SQLAlchemy from creating a table for this base

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    @staticmethod
    def generate_uuid() -> str:
        return str(uuid4())


__all__ = ["DbBaseModel", "utc_now", "enum_values", "string_enum"]
