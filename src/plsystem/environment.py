from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .errors import ArityMismatch, CyclicBinding, TypeMismatch, UnboundVariable, UnknownReservedModule
from .values import Literal, Value, Var, evaluate, to_value

Provider = Callable[[], Sequence[Any]]


@dataclass
class TurtleState:
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    @property
    def position(self) -> Tuple[float, float]:
        return self.x, self.y

    def forward(self, length: float) -> None:
        # Heading 0 points along +y.
        self.x += length * math.sin(self.heading)
        self.y += length * math.cos(self.heading)

    def turn(self, angle: float) -> None:
        self.heading += angle

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "heading": self.heading}


class Environment:
    """One lexical scope in a chain of scopes.

    Lookups walk outwards through ``outer``; writes only ever touch the local
    ``bindings``. Every scope of a chain shares the turtle of its root.
    """

    def __init__(self, outer: Optional[Environment] = None, turtle: Optional[TurtleState] = None) -> None:
        self.outer = outer
        if turtle is None:
            turtle = outer.turtle if outer is not None else TurtleState()
        self.turtle = turtle
        self.bindings: Dict[str, Value] = {}
        self.reserved: Dict[str, Provider] = {}

    def child(self) -> Environment:
        return Environment(self)

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.outer
        while scope is not None:
            depth += 1
            scope = scope.outer
        return depth

    def lookup(self, name: str) -> float:
        return self._lookup(name, frozenset())

    def _lookup(self, name: str, resolving: FrozenSet[Tuple[int, str]]) -> float:
        scope: Optional[Environment] = self
        while scope is not None:
            value = scope.bindings.get(name)
            if value is None:
                scope = scope.outer
                continue
            if not isinstance(value, Var):
                return evaluate(value, scope)
            key = (id(scope), name)
            if key in resolving:
                raise CyclicBinding(name)
            # Resolved relative to the defining scope; ``x = x`` names the enclosing x.
            start = scope.outer if value.name == name else scope
            if start is None:
                raise UnboundVariable(value.name)
            return start._lookup(value.name, resolving | {key})
        raise UnboundVariable(name)

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        try:
            return self.lookup(name)
        except UnboundVariable:
            return default

    def __contains__(self, name: str) -> bool:
        scope: Optional[Environment] = self
        while scope is not None:
            if name in scope.bindings:
                return True
            scope = scope.outer
        return False

    def bind(self, name: str, value: Any) -> None:
        self.bindings[name] = to_value(value)

    def register(self, name: str, provider: Provider) -> None:
        self.reserved[name] = provider

    def find_provider(self, name: str) -> Provider:
        scope: Optional[Environment] = self
        while scope is not None:
            provider = scope.reserved.get(name)
            if provider is not None:
                return provider
            scope = scope.outer
        raise UnknownReservedModule(name)

    def query(self, name: str, variables: Sequence[Value]) -> Tuple[float, ...]:
        """Call the reserved provider ``name`` and bind its values to ``variables`` here."""
        for variable in variables:
            if not isinstance(variable, Var):
                raise TypeMismatch(f"Query '{name}' arguments must be variables, got {variable!r}.")
        provider = self.find_provider(name)
        values = tuple(evaluate(to_value(raw), self) for raw in provider())
        if len(values) < len(variables):
            raise ArityMismatch(name, len(values), len(variables))
        for variable, value in zip(variables, values):
            self.bind(variable.name, value)
        return values

    def collapse(self, root: Environment) -> Environment:
        """Fold the scopes between here and ``root`` into one fresh child of ``root``.

        Every name visible from this scope keeps the value it resolves to now.
        """
        scopes: List[Environment] = []
        scope: Optional[Environment] = self
        while scope is not None and scope is not root:
            scopes.append(scope)
            scope = scope.outer
        flat = root.child()
        for scope in reversed(scopes):
            flat.reserved.update(scope.reserved)
            for name, value in scope.bindings.items():
                flat.bindings[name] = value
        for name, value in flat.bindings.items():
            if isinstance(value, Var):
                try:
                    flat.bindings[name] = Literal(self.lookup(name))
                except UnboundVariable:
                    # Left as a reference; it only fails if it is ever read.
                    pass
        return flat
