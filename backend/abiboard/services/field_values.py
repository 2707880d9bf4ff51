"""
Field value payloads.

A stored ``FieldValue`` row carries three nullable columns but only one of
them is meaningful for a given field. This module is the only place that
knows which: rows are read into and written from one of three payload
types, chosen by the field's declared type.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from abiboard.models.field_value import FieldValue
from abiboard.models.profile_field import FieldType, ProfileField


@dataclass(frozen=True)
class TextValue:
    text: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.text is None or not self.text.strip()

    def to_json(self) -> Optional[str]:
        return self.text


@dataclass(frozen=True)
class SingleImageValue:
    reference: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.reference

    def to_json(self) -> Optional[str]:
        return self.reference


@dataclass(frozen=True)
class MultiImageValue:
    references: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.references) == 0

    def to_json(self) -> list:
        return list(self.references)


FieldPayload = Union[TextValue, SingleImageValue, MultiImageValue]


def empty_payload(field: ProfileField) -> FieldPayload:
    """Payload of a field that has no stored row"""
    if field.type == FieldType.MULTI_IMAGE:
        return MultiImageValue()
    if field.type == FieldType.SINGLE_IMAGE:
        return SingleImageValue()
    return TextValue()


def payload_from_data(field: ProfileField, raw: Any) -> FieldPayload:
    """Build a payload from validated request data for ``field``"""
    if field.type == FieldType.MULTI_IMAGE:
        return MultiImageValue(tuple(raw or ()))
    if field.type == FieldType.SINGLE_IMAGE:
        return SingleImageValue(raw or None)
    if raw is None or raw == "":
        return TextValue(None)
    return TextValue(str(raw))


def read_payload(field: ProfileField, row: Optional[FieldValue]) -> FieldPayload:
    """Read the column selected by the field's type"""
    if row is None:
        return empty_payload(field)
    if field.type == FieldType.MULTI_IMAGE:
        return MultiImageValue(tuple(row.images_value or ()))
    if field.type == FieldType.SINGLE_IMAGE:
        return SingleImageValue(row.image_value)
    return TextValue(row.text_value)


def write_payload(row: FieldValue, payload: FieldPayload) -> None:
    """Store ``payload`` on ``row``; the other value columns are cleared"""
    row.text_value = None
    row.image_value = None
    row.images_value = []

    if isinstance(payload, TextValue):
        row.text_value = payload.text
    elif isinstance(payload, SingleImageValue):
        row.image_value = payload.reference
    elif isinstance(payload, MultiImageValue):
        row.images_value = list(payload.references)
    else:
        raise TypeError(f"Unsupported payload: {payload!r}")


def image_references(payload: FieldPayload) -> Tuple[str, ...]:
    """Stored file references held by a payload"""
    if isinstance(payload, SingleImageValue):
        return (payload.reference,) if payload.reference else ()
    if isinstance(payload, MultiImageValue):
        return payload.references
    return ()
