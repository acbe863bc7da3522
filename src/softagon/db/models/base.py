"""Declarative base and the column types shared by every Softagon table.

Keys: entity tables use server-generated UUIDs (gen_random_uuid()), the
helpdesk lookup tables use integer identity columns.

Timestamps: created_at is filled by the database; updated_at is filled by the
database on insert and by the ORM on every UPDATE issued through a session.
"""

import uuid
from datetime import datetime
from typing import Annotated

from sqlalchemy import DateTime, Identity, Integer, MetaData, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, mapped_column

# Constraint names must be deterministic so migrations can refer to them.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

UUIDPrimaryKey = Annotated[
    uuid.UUID,
    mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
]

IntPrimaryKey = Annotated[
    int,
    mapped_column(Integer, Identity(always=False), primary_key=True),
]

TimestampTZ = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), server_default=text("now()"), nullable=False),
]

UpdatedTimestampTZ = Annotated[
    datetime,
    mapped_column(
        DateTime(timezone=True),
        server_default=text("now()"),
        onupdate=func.now(),
        nullable=False,
    ),
]

OptionalTimestampTZ = Annotated[
    datetime | None,
    mapped_column(DateTime(timezone=True), nullable=True),
]

# Literal server defaults, shared with the migrations
DEFAULT_USER_ROLE = "user"
DEFAULT_WORKFLOW_TYPE = "sequential"
DEFAULT_TASK_STATUS = "pending"
DEFAULT_SHARE_PERMISSION = "read"
DEFAULT_MEMBERSHIP_ROLE = "member"
DEFAULT_CUSTOM_FIELD_TYPE = "text"


class Base(DeclarativeBase):
    """Base class of all Softagon models."""

    metadata = metadata

    def __repr__(self) -> str:
        keys = self.__mapper__.primary_key
        pk = ", ".join(f"{c.key}={getattr(self, c.key, None)!r}" for c in keys)
        return f"<{type(self).__name__} {pk}>"
