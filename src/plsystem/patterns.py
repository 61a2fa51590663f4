from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .environment import Environment
from .errors import ArityMismatch, TypeMismatch
from .values import Literal, Value, Var, evaluate, format_number

QUERY_SIGIL = "?"
TURN_ANGLE = math.pi / 2


def _coerce_arg(raw: Any) -> Value:
    if isinstance(raw, (Literal, Var)):
        return raw
    if isinstance(raw, str):
        return Var(raw)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise TypeMismatch(f"Module arguments must be numbers or variable names, got {raw!r}.")
    return Literal(float(raw))


def is_query_name(name: str) -> bool:
    return name.startswith(QUERY_SIGIL)


def strip_sigil(name: str) -> str:
    return name[len(QUERY_SIGIL):] if is_query_name(name) else name


@dataclass(frozen=True, init=False)
class Module:
    name: str
    args: Tuple[Value, ...]

    def __init__(self, name: str, *args: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "args", tuple(_coerce_arg(arg) for arg in args))

    @property
    def arity(self) -> int:
        return len(self.args)

    @property
    def is_query(self) -> bool:
        return is_query_name(self.name)

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}({','.join(str(arg) for arg in self.args)})"


QueryEval = Callable[[Sequence[Var], Environment], None]


@dataclass(frozen=True, init=False)
class QueryModule:
    """A module whose rewrite is a call into ``eval`` rather than a production."""

    name: str
    eval: QueryEval
    args: Tuple[Var, ...]

    def __init__(self, name: str, eval: QueryEval, *args: Any) -> None:
        coerced = tuple(_coerce_arg(arg) for arg in args)
        for arg in coerced:
            if not isinstance(arg, Var):
                raise TypeMismatch(f"Query module '{name}' takes variables only, got {arg!r}.")
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "eval", eval)
        object.__setattr__(self, "args", coerced)

    @classmethod
    def reserved(cls, name: str, *args: Any) -> QueryModule:
        """Query module backed by the reserved registry entry named after ``name``."""
        provider_name = strip_sigil(name)

        def resolve(variables: Sequence[Var], env: Environment) -> None:
            env.query(provider_name, variables)

        return cls(name, resolve, *args)

    @property
    def arity(self) -> int:
        return len(self.args)

    def resolve(self, env: Environment) -> Module:
        self.eval(self.args, env)
        values = [Literal(evaluate(arg, env)) for arg in self.args]
        return Module(strip_sigil(self.name), *values)

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}({','.join(arg.name for arg in self.args)})"


Pattern = Union[Module, QueryModule]


@dataclass(frozen=True, init=False)
class Match:
    name: str
    args: Tuple[Value, ...]

    def __init__(self, name: str, *args: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "args", tuple(_coerce_arg(arg) for arg in args))

    def try_match(self, module: Module, env: Environment) -> Tuple[bool, Environment]:
        """Test ``module`` against this template.

        Returns ``(matched, active)`` where ``active`` is a fresh child of
        ``env`` holding the variable bindings, or ``env`` itself when the
        template binds nothing. ``env`` is never written to.
        """
        if module.name != self.name:
            return False, env
        if len(module.args) != len(self.args):
            raise ArityMismatch(self.name, len(self.args), len(module.args))

        inner = env.child()
        for template, actual in zip(self.args, module.args):
            value = evaluate(actual, env)
            if isinstance(template, Literal):
                if evaluate(template, env) != value:
                    return False, env
            else:
                inner.bind(template.name, value)

        if inner.bindings:
            return True, inner
        return True, env

    def __str__(self) -> str:
        return str(Module(self.name, *self.args))


Rule = Callable[[Environment], Sequence[Pattern]]


@dataclass(frozen=True)
class Production:
    match: Match
    rule: Rule
    probability: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(f"Probability must be within [0, 1] for '{self.match}', got {self.probability}.")

    def gate(self, rng: random.Random) -> bool:
        # The generator is only consumed for genuinely probabilistic productions.
        if self.probability < 1 and rng.random() >= self.probability:
            return False
        return True

    def apply(
        self, module: Module, env: Environment, rng: random.Random
    ) -> Tuple[Optional[List[Pattern]], Environment]:
        """Try to fire on ``module``.

        Returns the replacement (``None`` when the production does not fire)
        and the environment that is active afterwards.
        """
        if not self.gate(rng):
            return None, env
        if module.is_query:
            env.query(strip_sigil(module.name), module.args)
        matched, active = self.match.try_match(module, env)
        if not matched:
            return None, env
        return list(self.rule(active)), active


def rewrite(
    pattern: Pattern,
    productions: Sequence[Production],
    env: Environment,
    rng: random.Random,
) -> Tuple[Optional[List[Pattern]], Environment]:
    """Replacement for ``pattern`` from the first production that fires, if any."""
    if isinstance(pattern, QueryModule):
        return [pattern.resolve(env)], env
    for production in productions:
        replacement, active = production.apply(pattern, env, rng)
        if replacement is not None:
            return replacement, active
    return None, env


def interpret(pattern: Pattern, env: Environment) -> None:
    if isinstance(pattern, QueryModule):
        return
    turtle = env.turtle
    if pattern.name == "F":
        if pattern.arity != 1:
            raise ArityMismatch(pattern.name, 1, pattern.arity)
        turtle.forward(evaluate(pattern.args[0], env))
    elif pattern.name == "-":
        if pattern.arity != 0:
            raise ArityMismatch(pattern.name, 0, pattern.arity)
        turtle.turn(TURN_ANGLE)
    elif pattern.is_query:
        env.query(strip_sigil(pattern.name), pattern.args)


def render(pattern: Pattern, env: Environment) -> str:
    if isinstance(pattern, QueryModule):
        return str(pattern)
    if not pattern.args:
        return pattern.name
    values = ",".join(format_number(evaluate(arg, env)) for arg in pattern.args)
    return f"{pattern.name}({values})"
