"""Validators — pure functions that turn an untyped value into a typed one or reject it.

Invariants:
    - A validator never mutates the stored value; its return value replaces it
    - Every rejection reaches the caller as ValidationFailedError
    - The validator's own message is preserved on the raised error
"""

from typing import Any, Callable, TypeVar

from pydantic import TypeAdapter, ValidationError

from kvstore.core.errors import ValidationFailedError

T = TypeVar("T")

Validator = Callable[[Any], T]


def run_validator(validator: Validator[T], value: Any, key: str | None = None) -> T:
    """Apply a validator, normalizing any rejection to ValidationFailedError."""
    try:
        return validator(value)
    except ValidationFailedError as e:
        if e.context.key is None:
            e.context.key = key
        raise
    except ValidationError as e:
        raise ValidationFailedError(
            str(e), key=key, errors=e.errors(include_url=False),
        ) from e
    except Exception as e:
        raise ValidationFailedError(str(e) or type(e).__name__, key=key) from e


def pydantic_validator(tp: type[T] | Any) -> Validator[T]:
    """Build a validator from any type pydantic can validate.

    Works with BaseModel subclasses, builtin generics (``list[int]``) and
    ``Annotated`` constraints. The validated (coerced) object is returned.
    """
    adapter = TypeAdapter(tp)

    def _validate(value: Any) -> T:
        return adapter.validate_python(value)

    return _validate
