from __future__ import annotations


class LSystemError(RuntimeError):
    pass


class UnboundVariable(LSystemError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unbound variable '{name}'.")
        self.name = name


class UnknownReservedModule(LSystemError):
    def __init__(self, name: str) -> None:
        super().__init__(f"No reserved module registered under '{name}'.")
        self.name = name


class ArityMismatch(LSystemError):
    def __init__(self, name: str, expected: int, got: int) -> None:
        super().__init__(f"Module '{name}' expects {expected} argument(s), got {got}.")
        self.name = name
        self.expected = expected
        self.got = got


class TypeMismatch(LSystemError):
    pass


class GrammarError(ValueError):
    pass


class CyclicBinding(UnboundVariable):
    def __init__(self, name: str) -> None:
        LSystemError.__init__(self, f"Binding for '{name}' refers back to itself.")
        self.name = name
