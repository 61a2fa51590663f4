"""Text syntax for axioms, match templates and production bodies.

A module sequence is written the way traces print it, e.g. ``F(1) ?P(x,y) - A``
or ``F(1)?P(x,y)-A``. Production bodies may use arithmetic over the variables
bound by the match: ``F(k+1)``, ``G(2*x^2, -y)``.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple, Union

import pyparsing as pp

from .environment import Environment
from .errors import GrammarError, LSystemError
from .patterns import Match, Module, Pattern, Production, Rule, is_query_name
from .values import Literal, Var, as_number

pp.ParserElement.enable_packrat()


@dataclass(frozen=True)
class Number:
    value: float

    def evaluate(self, env: Environment) -> float:
        return self.value


@dataclass(frozen=True)
class Name:
    name: str

    def evaluate(self, env: Environment) -> float:
        return env.lookup(self.name)


@dataclass(frozen=True)
class Negate:
    operand: "Expression"

    def evaluate(self, env: Environment) -> float:
        return -self.operand.evaluate(env)


_OPERATORS: Dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "^": operator.pow,
}


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expression"
    right: "Expression"

    def evaluate(self, env: Environment) -> float:
        result = _OPERATORS[self.op](self.left.evaluate(env), self.right.evaluate(env))
        return as_number(result, f"Result of '{self.op}'")


Expression = Union[Number, Name, Negate, BinaryOp]


def _fold_left(tokens: pp.ParseResults) -> Expression:
    items = tokens[0]
    result = items[0]
    for index in range(1, len(items), 2):
        result = BinaryOp(items[index], result, items[index + 1])
    return result


def _fold_right(tokens: pp.ParseResults) -> Expression:
    items = tokens[0]
    result = items[-1]
    for index in range(len(items) - 2, 0, -2):
        result = BinaryOp(items[index], items[index - 1], result)
    return result


def _negate(tokens: pp.ParseResults) -> Expression:
    return Negate(tokens[0][1])


NUMBER = pp.Regex(r"(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?").set_parse_action(lambda t: Number(float(t[0])))
VARIABLE = pp.Regex(r"[A-Za-z_][A-Za-z0-9_]*").set_parse_action(lambda t: Name(t[0]))

EXPRESSION = pp.infix_notation(
    NUMBER | VARIABLE,
    [
        ("^", 2, pp.OpAssoc.RIGHT, _fold_right),
        ("-", 1, pp.OpAssoc.RIGHT, _negate),
        (pp.one_of("* /"), 2, pp.OpAssoc.LEFT, _fold_left),
        (pp.one_of("+ -"), 2, pp.OpAssoc.LEFT, _fold_left),
    ],
)

SYMBOL = pp.Regex(r"\?[A-Za-z_][A-Za-z0-9_]*|[A-Za-z_][A-Za-z0-9_]*|[-+&^\\/|\[\]!$]")
ARGUMENTS = pp.Suppress("(") + pp.Optional(EXPRESSION + pp.ZeroOrMore(pp.Suppress(",") + EXPRESSION)) + pp.Suppress(")")
MODULE = pp.Group(SYMBOL("name") + pp.Group(pp.Optional(ARGUMENTS))("args"))
SEQUENCE = pp.ZeroOrMore(MODULE + pp.Optional(pp.Suppress(",")))

ModuleTemplate = Tuple[str, Tuple[Expression, ...]]


def parse_expression(text: str) -> Expression:
    try:
        return EXPRESSION.parse_string(text, parse_all=True)[0]
    except pp.ParseException as exc:
        raise GrammarError(f"Invalid expression {text!r} at column {exc.column}: {exc.msg}") from exc


def parse_sequence(text: str) -> List[ModuleTemplate]:
    try:
        parsed = SEQUENCE.parse_string(text, parse_all=True)
    except pp.ParseException as exc:
        raise GrammarError(f"Invalid module sequence {text!r} at column {exc.column}: {exc.msg}") from exc
    templates: List[ModuleTemplate] = []
    for group in parsed:
        name = group["name"]
        args = tuple(group["args"])
        if is_query_name(name):
            for arg in args:
                if not isinstance(arg, Name):
                    raise GrammarError(f"Query module '{name}' takes variable names only in {text!r}.")
        templates.append((name, args))
    return templates


def _build(templates: Sequence[ModuleTemplate], env: Environment) -> List[Pattern]:
    patterns: List[Pattern] = []
    for name, args in templates:
        if is_query_name(name):
            patterns.append(Module(name, *(Var(arg.name) for arg in args)))
        else:
            patterns.append(Module(name, *(Literal(arg.evaluate(env)) for arg in args)))
    return patterns


def parse_axiom(text: str) -> List[Pattern]:
    templates = parse_sequence(text)
    try:
        return _build(templates, Environment())
    except (LSystemError, ArithmeticError) as exc:
        raise GrammarError(f"Axiom arguments must be constant in {text!r}: {exc}") from exc


def parse_match(text: str) -> Match:
    templates = parse_sequence(text)
    if len(templates) != 1:
        raise GrammarError(f"A match template must name exactly one module, got {text!r}.")
    name, args = templates[0]
    values = []
    for arg in args:
        if isinstance(arg, Name):
            values.append(Var(arg.name))
        elif isinstance(arg, Number):
            values.append(Literal(arg.value))
        elif isinstance(arg, Negate) and isinstance(arg.operand, Number):
            values.append(Literal(-arg.operand.value))
        else:
            raise GrammarError(f"Match arguments must be numbers or variable names in {text!r}.")
    return Match(name, *values)


def compile_rule(text: str) -> Rule:
    templates = parse_sequence(text)

    def rule(env: Environment) -> List[Pattern]:
        return _build(templates, env)

    return rule


def parse_production(match: str, produce: str, probability: float = 1.0) -> Production:
    return Production(parse_match(match), compile_rule(produce), probability)
