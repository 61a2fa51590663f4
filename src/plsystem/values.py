from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from .errors import TypeMismatch

if TYPE_CHECKING:
    from .environment import Environment


@dataclass(frozen=True)
class Literal:
    value: float

    def __str__(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True)
class Var:
    name: str

    def __str__(self) -> str:
        return self.name


Value = Union[Literal, Var]


def as_number(raw: Any, context: str = "value") -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise TypeMismatch(f"{context} must be numeric, got {type(raw).__name__} {raw!r}.")
    return float(raw)


def to_value(raw: Any) -> Value:
    """Wrap a plain number as a Literal; Values pass through untouched."""
    if isinstance(raw, (Literal, Var)):
        return raw
    return Literal(as_number(raw))


def evaluate(value: Value, env: "Environment") -> float:
    if isinstance(value, Literal):
        return as_number(value.value, "Literal")
    if isinstance(value, Var):
        return env.lookup(value.name)
    raise TypeMismatch(f"Cannot evaluate {value!r}.")


def format_number(value: float) -> str:
    # Whole numbers print without a fraction; anything else keeps full precision.
    value = float(value)
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)
