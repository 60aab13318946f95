"""
Tecspacs: Payload Validation Helpers
====================================

What:  Turns caller input (mappings or pydantic models) into validated schema
       instances and enforces the "non-empty" rules pydantic cannot express.
Who:   DatabaseManager (every write) and StorageManager (package names).

Error translation:
    pydantic.ValidationError never escapes; it becomes
    tecspacs.exceptions.ValidationError with the offending field attached.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from tecspacs.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(
    model_cls: Type[ModelT],
    data: Union[ModelT, BaseModel, Mapping[str, Any], None],
    resource: str,
) -> ModelT:
    """
    Validate `data` into `model_cls`.

    Accepts an instance of the model (returned as-is), any other pydantic
    model (its explicitly set fields are re-validated), or a mapping.
    A missing required field, or one given as None, reports "is required".
    """
    if data is None:
        raise ValidationError(message=f"No {resource} data provided")
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if not isinstance(data, Mapping):
        raise ValidationError(
            message=f"Invalid {resource} data: expected a mapping",
            context={"type": type(data).__name__},
        )

    try:
        return model_cls.model_validate(dict(data))
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        if first.get("type") == "missing" or first.get("input", "") is None:
            message = f"{resource.capitalize()} {field} is required"
        else:
            message = f"Invalid {resource} {field}: {first.get('msg')}"
        raise ValidationError(
            message=message,
            field=field,
            context={"errors": e.error_count()},
        ) from e


def require_name(name: Optional[str], resource: str) -> str:
    """Reject a lookup key that is None, empty or whitespace."""
    if name is None or not str(name).strip():
        raise ValidationError(
            message=f"Empty {resource} name provided",
            field="name",
        )
    return name


def require_text(
    value: Optional[str],
    field: str,
    resource: str,
    strip: bool = True,
) -> str:
    checked = value.strip() if (strip and value is not None) else value
    if not checked:
        raise ValidationError(
            message=f"{resource.capitalize()} {field} is required",
            field=field,
        )
    return value


def provided_fields(model: BaseModel) -> Dict[str, Any]:
    """
    Fields the caller set to a non-None value.

    Omitted fields and fields explicitly set to None both mean
    "leave the stored value unchanged".
    """
    return {
        key: getattr(model, key)
        for key in model.model_fields_set
        if getattr(model, key) is not None
    }


def reject_empty(
    changes: Mapping[str, Any],
    fields: Iterable[str],
    resource: str,
    unstripped: Iterable[str] = (),
) -> None:
    """
    Raise ValidationError if any of `fields` is being set to an empty string.

    Fields listed in `unstripped` are compared as-is; the others are trimmed
    first, so "   " counts as empty.
    """
    unstripped = set(unstripped)
    for field in fields:
        if field not in changes:
            continue
        value = changes[field]
        checked = value if field in unstripped else value.strip()
        if checked == "":
            raise ValidationError(
                message=f"{resource.capitalize()} {field} cannot be empty",
                field=field,
            )
