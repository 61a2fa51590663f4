from __future__ import annotations

import random
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .environment import Environment, Provider, TurtleState
from .patterns import Match, Pattern, Production, Rule, interpret, render, rewrite

StepObserver = Callable[[int, bool, str], None]

TURTLE_QUERIES: Dict[str, Callable[[TurtleState], Tuple[float, ...]]] = {
    "position": lambda turtle: (turtle.x, turtle.y),
    "heading": lambda turtle: (turtle.heading,),
}


class LSystem:
    def __init__(
        self,
        axiom: Sequence[Pattern],
        productions: Sequence[Production] = (),
        seed: int | None = None,
        reserved: Mapping[str, Provider] | None = None,
        on_step: Optional[StepObserver] = None,
    ) -> None:
        self.axiom = tuple(axiom)
        self.patterns: List[Pattern] = list(self.axiom)
        self.productions: List[Production] = list(productions)
        # Holds the reserved registry and the turtle; bindings go to ``environment``.
        self.root = Environment()
        self.environment = self.root.child()
        self.seed = seed
        self._random = random.Random(seed)
        self._on_step = on_step
        self.step_count = 0
        self.trace = ""
        self.history: List[str] = []
        for name, provider in (reserved or {}).items():
            self.register(name, provider)

    @property
    def turtle(self) -> TurtleState:
        return self.root.turtle

    def add_production(self, production: Production | Match, rule: Rule | None = None, probability: float = 1.0) -> None:
        if isinstance(production, Match):
            if rule is None:
                raise ValueError(f"A rule is required alongside match '{production}'.")
            production = Production(production, rule, probability)
        self.productions.append(production)

    def register(self, name: str, provider: Provider) -> None:
        self.root.register(name, provider)

    def register_turtle_query(self, name: str, kind: str) -> None:
        reader = TURTLE_QUERIES.get(kind)
        if reader is None:
            raise ValueError(f"Unknown turtle query kind '{kind}'; expected one of {sorted(TURTLE_QUERIES)}.")
        turtle = self.turtle
        self.register(name, lambda: reader(turtle))

    def step(self) -> bool:
        """Run one derivation: rewrite, interpret, then render the trace.

        One active environment is threaded through all three passes, so
        values bound by a query or a match are visible to every later pattern.
        Returns whether any pattern was rewritten.
        """
        self.environment = self.environment.collapse(self.root)
        changed = False
        rewritten: List[Pattern] = []
        for pattern in self.patterns:
            replacement, active = rewrite(pattern, self.productions, self.environment, self._random)
            if active is not self.environment:
                # Match bindings arrive in a new child scope; fold it in so the chain stays one deep.
                active = active.collapse(self.root)
            self.environment = active
            if replacement is None:
                rewritten.append(pattern)
                continue
            changed = True
            rewritten.extend(replacement)
        self.patterns = rewritten

        for pattern in self.patterns:
            interpret(pattern, self.environment)
        self.trace = "".join(render(pattern, self.environment) for pattern in self.patterns)

        self.step_count += 1
        self.history.append(self.trace)
        if self._on_step is not None:
            self._on_step(self.step_count, changed, self.trace)
        return changed

    def run(self, steps: int, max_length: int | None = None) -> int:
        """Step up to ``steps`` times, stopping once nothing changes.

        Also stops when the sequence grows beyond ``max_length`` patterns.
        Returns the number of steps taken.
        """
        taken = 0
        for _ in range(max(steps, 0)):
            changed = self.step()
            taken += 1
            if not changed:
                break
            if max_length is not None and len(self.patterns) > max_length:
                break
        return taken

    def __len__(self) -> int:
        return len(self.patterns)
