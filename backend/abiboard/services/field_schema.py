"""
Draft validation rules derived from the field registry.

``build_draft_ruleset`` turns the current field definitions into a pydantic
model on every call; nothing is cached, so an admin edit is picked up by
the next draft save. Draft rules only cap lengths and counts; whether a
field is required is checked on submit (see ``required_fields``).
"""
from typing import Annotated, Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from abiboard.core.exceptions import ValidationError
from abiboard.models.profile_field import DEFAULT_MAX_FILES, FieldType, ProfileField


def text_too_long_message(label: str, max_length: int) -> str:
    return f"{label} darf maximal {max_length} Zeichen lang sein."


def too_many_images_message(label: str, max_files: int) -> str:
    return f"{label}: Maximal {max_files} Bilder erlaubt."


# Annotation used for a field key in the generated model
RuleDefinition = Any


def _text_rule(field: ProfileField) -> RuleDefinition:
    label, max_length = field.label, field.max_length

    def check_length(value: Optional[str]) -> Optional[str]:
        if value is not None and max_length and len(value) > max_length:
            raise ValueError(text_too_long_message(label, max_length))
        return value

    return Annotated[Optional[str], AfterValidator(check_length)]


def _single_image_rule(field: ProfileField) -> RuleDefinition:
    return Optional[str]


def _multi_image_rule(field: ProfileField) -> RuleDefinition:
    label = field.label
    max_files = field.max_files or DEFAULT_MAX_FILES

    def check_count(value: Optional[List[str]]) -> List[str]:
        value = value or []
        if len(value) > max_files:
            raise ValueError(too_many_images_message(label, max_files))
        return value

    return Annotated[Optional[List[str]], AfterValidator(check_count)]


RULE_BUILDERS: Dict[FieldType, Callable[[ProfileField], RuleDefinition]] = {
    FieldType.TEXT: _text_rule,
    FieldType.TEXTAREA: _text_rule,
    FieldType.SINGLE_IMAGE: _single_image_rule,
    FieldType.MULTI_IMAGE: _multi_image_rule,
}


class DraftRuleset:
    """Validation rules for one draft save, keyed by field key"""

    def __init__(self, model: Type[BaseModel], labels: Dict[str, str]):
        self.model = model
        self.labels = labels

    @property
    def keys(self) -> List[str]:
        return list(self.labels)

    def validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a (partial) draft payload.

        Returns only the keys present in ``data`` that belong to an active
        field. Raises ``ValidationError`` carrying the first violation.
        """
        try:
            instance = self.model.model_validate(data)
        except PydanticValidationError as e:
            raise self._first_error(e)
        return instance.model_dump(by_alias=True, exclude_unset=True)

    def _first_error(self, exc: PydanticValidationError) -> ValidationError:
        error = exc.errors()[0]
        key = str(error["loc"][0]) if error.get("loc") else None
        label = self.labels.get(key, key)

        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            message = str(ctx_error)
        else:
            message = f"{label}: Ungültiger Wert."
        return ValidationError(message, field=key)


def build_draft_ruleset(fields: Iterable[ProfileField]) -> DraftRuleset:
    """Derive the draft ruleset from the active field definitions"""
    definitions: Dict[str, Tuple[Any, Any]] = {}
    labels: Dict[str, str] = {}

    for field in sorted(fields, key=lambda f: f.order):
        if not field.active:
            continue
        builder = RULE_BUILDERS.get(field.type)
        if builder is None:
            continue
        # Keys may collide with BaseModel attributes, so they are aliases
        definitions[f"field_{len(definitions)}"] = (builder(field), Field(None, alias=field.key))
        labels[field.key] = field.label

    model = create_model(
        "DraftProfileValues",
        __config__=ConfigDict(extra="ignore", populate_by_name=False),
        **definitions,
    )
    return DraftRuleset(model, labels)
