"""
Payload checks shared by every resource: required fields, enum values and
foreign-key existence.

``check_references`` is the single place where a referenced id is resolved
against its collection before a write is allowed.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from flask import request

from db_stores import store_for
from errors import NotFound, ValidationError

EMAIL_RE = re.compile(r".+@.+\..+")


@dataclass(frozen=True)
class Reference:
    """A foreign-key field and the collection its value must resolve in."""

    field: str
    target: str
    required: bool = False

    @property
    def label(self) -> str:
        return self.target


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_references(payload: Mapping[str, Any], references: Iterable[Reference],
                     *, partial: bool = False) -> None:
    """Raise NotFound for the first reference that does not resolve.

    References are checked in the order given, so the owner should come
    first. With ``partial`` (updates), absent fields are skipped even when
    required; present ones are always re-validated.
    """
    for ref in references:
        value = payload.get(ref.field)
        if is_blank(value):
            if ref.required and not partial:
                raise NotFound.for_entity(ref.label)
            continue
        if not store_for(ref.target).exists(str(value)):
            raise NotFound.for_entity(ref.label)


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if is_blank(payload.get(f))]
    if missing:
        raise ValidationError(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")


def require_choice(value: Any, choices: Iterable[str], field: str) -> None:
    choices = tuple(choices)
    if value is not None and value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def require_number(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    for f in fields:
        value = payload.get(f)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{f} must be a number")


def require_scalars(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Reject objects and arrays in fields stored as plain column values."""
    for f in fields:
        if isinstance(payload.get(f), (dict, list)):
            raise ValidationError(f"{f} must be a string, number or boolean")


def require_flags(value: Any, keys: Iterable[str], field: str) -> None:
    """``value`` must be an object whose keys are among ``keys``, each a boolean."""
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    keys = tuple(keys)
    for k, flag in value.items():
        if k not in keys:
            raise ValidationError(f"{field}.{k} is not a recognised setting")
        if not isinstance(flag, bool):
            raise ValidationError(f"{field}.{k} must be true or false")


def require_email(value: Any) -> None:
    if not isinstance(value, str) or not EMAIL_RE.fullmatch(value.strip()):
        raise ValidationError("Please enter a valid email")


def json_body() -> dict:
    """Return the request's JSON object body, or raise ValidationError."""
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data():
            raise ValidationError("Malformed JSON body")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
