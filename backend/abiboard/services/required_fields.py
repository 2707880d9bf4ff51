"""Required-field check run when a student submits the profile"""
from typing import Iterable, List, Mapping

from abiboard.models.profile_field import ProfileField
from abiboard.services.field_values import FieldPayload, empty_payload


def required_message(label: str) -> str:
    return f"{label} ist ein Pflichtfeld."


def check_required_fields(
    fields: Iterable[ProfileField],
    values: Mapping[str, FieldPayload],
) -> List[str]:
    """
    Return one message per active required field without a value, in
    field order. An empty list means the profile can be submitted.

    Unlike draft validation this collects every violation.
    """
    errors: List[str] = []
    for field in sorted(fields, key=lambda f: f.order):
        if not field.active or not field.required:
            continue
        payload = values.get(field.key) or empty_payload(field)
        if payload.is_empty:
            errors.append(required_message(field.label))
    return errors
