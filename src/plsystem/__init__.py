"""Parametric L-system rewriting with scoped variables and turtle state."""

from .config import Grammar, build_lsystem, load_config, parse_grammar_file
from .environment import Environment, TurtleState
from .errors import ArityMismatch, CyclicBinding, GrammarError, LSystemError, TypeMismatch, UnboundVariable, UnknownReservedModule
from .lsystem import LSystem
from .patterns import Match, Module, Production, QueryModule, interpret, render, rewrite
from .syntax import compile_rule, parse_axiom, parse_match, parse_production
from .values import Literal, Var, evaluate

__all__ = [
    "ArityMismatch",
    "CyclicBinding",
    "Environment",
    "Grammar",
    "GrammarError",
    "LSystem",
    "LSystemError",
    "Literal",
    "Match",
    "Module",
    "Production",
    "QueryModule",
    "TurtleState",
    "TypeMismatch",
    "UnboundVariable",
    "UnknownReservedModule",
    "Var",
    "build_lsystem",
    "compile_rule",
    "evaluate",
    "interpret",
    "load_config",
    "parse_axiom",
    "parse_grammar_file",
    "parse_match",
    "parse_production",
    "render",
    "rewrite",
]
