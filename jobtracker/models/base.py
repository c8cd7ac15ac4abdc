"""Shared model base classes.

TrackerModel is the pydantic base for every domain record: snake_case
attributes in Python, camelCase keys in exported JSON. Base is the
SQLAlchemy declarative base used by the SQL document store.
"""

import uuid
from datetime import datetime

import pydantic
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase


def new_id(prefix: str) -> str:
    """Generate an opaque record id such as ``app_3f2c...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


class TrackerModel(BaseModel):
    """Base class for domain records.

    Unknown keys in incoming data are ignored so exports from newer or older
    versions still import.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class TrackerInput(TrackerModel):
    """Base class for create/update payloads: unexpected fields are rejected."""

    model_config = ConfigDict(extra="forbid")


def format_validation_errors(exc: pydantic.ValidationError) -> list[str]:
    """Turn a pydantic ValidationError into human-readable messages.

    Examples:
        "expectedSalary: Input should be greater than or equal to 0"
        "roundNumber: Extra inputs are not permitted"
    """
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        if location:
            messages.append(f"{location}: {error['msg']}")
        else:
            messages.append(error["msg"])
    return messages


class Base(DeclarativeBase):
    """Base class for ORM models."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }
