"""
Payload schemas and the helpers that validate raw request data against them.

Schemas are pydantic models; any pydantic failure is re-raised as the
domain ValidationError so callers only ever deal with one error type.
"""
import re
from collections.abc import Mapping
from typing import Any, List, Optional, Type, TypeVar
from urllib.parse import urlsplit

import pydantic
from pydantic import BaseModel, Field, field_validator

from .errors import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_HIERARCHICAL_SCHEMES = {"http", "https", "ftp", "ws", "wss"}


# PUBLIC_INTERFACE
def is_absolute_url(value: str) -> bool:
    """Return True if value parses as an absolute URL (scheme plus a target)."""
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in _HIERARCHICAL_SCHEMES:
        return bool(parts.hostname)
    return bool(parts.netloc or parts.path)


class RegisterPayload(BaseModel):
    username: str = Field(..., min_length=1, description="Unique, case-sensitive username")
    password: str = Field(..., min_length=6, description="At least 6 characters")


class LoginPayload(BaseModel):
    username: str
    password: str


class NotePayload(BaseModel):
    content: str = Field(..., min_length=1, description="Note content")
    tags: Optional[List[str]] = None
    # Only honoured when it is a real boolean.
    favorite: Any = None


class BookmarkPayload(BaseModel):
    url: str = Field(..., description="Absolute URL")
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    favorite: Any = None

    @field_validator("url")
    @classmethod
    def url_must_be_absolute(cls, value: str) -> str:
        if not is_absolute_url(value):
            raise ValueError("A valid URL is required.")
        return value


# PUBLIC_INTERFACE
def format_errors(errors) -> str:
    """Flatten pydantic error dicts into one readable message."""
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        msg = error.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(messages) or ValidationError.default_message


# PUBLIC_INTERFACE
def validate_payload(schema: Type[SchemaT], payload: Any) -> SchemaT:
    """
    Validate payload against schema.
    Accepts an instance of schema as-is, otherwise requires a mapping.
    Raises ValidationError describing every failing field.
    """
    if isinstance(payload, schema):
        return payload
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object.")
    try:
        return schema.model_validate(dict(payload))
    except pydantic.ValidationError as exc:
        raise ValidationError(format_errors(exc.errors())) from exc
