from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib  # type: ignore[no-redef]

from .errors import GrammarError
from .lsystem import TURTLE_QUERIES, LSystem
from .patterns import Production
from .syntax import parse_axiom, parse_production

OUTPUT_FORMATS = ("trace", "json")
DEFAULT_RESERVED = {"P": "position"}


@dataclass(frozen=True)
class Rule:
    match: str
    produce: str
    probability: float = 1.0


@dataclass(frozen=True)
class Grammar:
    axiom: str
    rules: Sequence[Rule]
    steps: int = 1
    seed: Optional[int] = None
    reserved: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_RESERVED))
    path: Optional[Path] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "axiom": self.axiom,
            "steps": self.steps,
            "seed": self.seed,
            "productions": [
                {"match": rule.match, "produce": rule.produce, "probability": rule.probability}
                for rule in self.rules
            ],
            "reserved": dict(self.reserved),
        }


@dataclass(frozen=True)
class OutputConfig:
    format: str = "trace"
    max_length: int = 100_000
    max_steps: int = 1_000


@dataclass(frozen=True)
class Config:
    grammar: Grammar
    steps: int
    seed: Optional[int]
    output: OutputConfig


def _parse_probability(raw: Any, where: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise GrammarError(f"Probability for {where} must be a number.")
    try:
        probability = float(raw)
    except ValueError as exc:
        raise GrammarError(f"Probability for {where} must be a number, got {raw!r}.") from exc
    if not 0.0 <= probability <= 1.0:
        raise GrammarError(f"Probability for {where} must be within [0, 1], got {probability}.")
    return probability


def _parse_rule_entry(index: int, entry: Any) -> Rule:
    where = f"production #{index + 1}"
    if isinstance(entry, str):
        value = entry.strip()
        if "->" not in value:
            raise GrammarError(f"Expected 'match -> produce' for {where}, got {entry!r}.")
        lhs, rhs = value.split("->", 1)
        probability = 1.0
        # Trailing ": probability" on the right-hand side.
        if ":" in rhs:
            rhs, maybe_probability = rhs.rsplit(":", 1)
            probability = _parse_probability(maybe_probability.strip(), where)
        if not lhs.strip():
            raise GrammarError(f"Empty match for {where}.")
        return Rule(match=lhs.strip(), produce=rhs.strip(), probability=probability)
    if isinstance(entry, Mapping):
        match = str(entry.get("match", "")).strip()
        if not match:
            raise GrammarError(f"Missing 'match' for {where}.")
        produce = entry.get("produce", "")
        if not isinstance(produce, str):
            raise GrammarError(f"'produce' for {where} must be a string.")
        probability = _parse_probability(entry.get("probability", 1.0), where)
        return Rule(match=match, produce=produce.strip(), probability=probability)
    raise GrammarError(f"Unsupported production format for {where}.")


def _parse_reserved(raw: Any) -> Dict[str, str]:
    if raw is None:
        return dict(DEFAULT_RESERVED)
    if not isinstance(raw, Mapping):
        raise GrammarError("[grammar.reserved] must be a table.")
    reserved: Dict[str, str] = {}
    for name, kind in raw.items():
        kind = str(kind)
        if kind not in TURTLE_QUERIES:
            raise GrammarError(
                f"Unknown reserved module kind '{kind}' for '{name}'; expected one of {sorted(TURTLE_QUERIES)}."
            )
        reserved[str(name)] = kind
    return reserved


def _parse_int(raw: Any, where: str, minimum: Optional[int] = None) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise GrammarError(f"{where} must be an integer.")
    if minimum is not None and raw < minimum:
        raise GrammarError(f"{where} must be >= {minimum}, got {raw}.")
    return raw


def parse_grammar(data: Mapping[str, Any], path: Optional[Path] = None) -> Grammar:
    grammar_raw = data.get("grammar")
    source = f": {path}" if path is not None else ""
    if not isinstance(grammar_raw, Mapping):
        raise GrammarError(f"Grammar must contain a [grammar] section{source}")
    axiom = str(grammar_raw.get("axiom", "")).strip()
    if not axiom:
        raise GrammarError(f"Grammar missing axiom{source}")
    productions_raw = grammar_raw.get("productions", [])
    if not isinstance(productions_raw, list):
        raise GrammarError(f"[[grammar.productions]] must be an array{source}")
    rules = tuple(_parse_rule_entry(index, entry) for index, entry in enumerate(productions_raw))
    steps = _parse_int(grammar_raw.get("steps", 1), "grammar.steps", minimum=0)
    seed = grammar_raw.get("seed")
    if seed is not None:
        seed = _parse_int(seed, "grammar.seed")
    return Grammar(
        axiom=axiom,
        rules=rules,
        steps=steps,
        seed=seed,
        reserved=_parse_reserved(grammar_raw.get("reserved")),
        path=path,
    )


def parse_grammar_file(path: Path) -> Grammar:
    if not path.exists():
        raise FileNotFoundError(f"Grammar file not found: {path}")
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    return parse_grammar(data, path)


def build_lsystem(grammar: Grammar, seed: Optional[int] = None, **kwargs: Any) -> LSystem:
    """Compile ``grammar`` into a ready-to-step engine; ``seed`` overrides the grammar's."""
    productions: List[Production] = [parse_production(rule.match, rule.produce, rule.probability) for rule in grammar.rules]
    lsystem = LSystem(
        parse_axiom(grammar.axiom),
        productions,
        seed=seed if seed is not None else grammar.seed,
        **kwargs,
    )
    for name, kind in grammar.reserved.items():
        lsystem.register_turtle_query(name, kind)
    return lsystem


def load_config(path: str | Path) -> Config:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("rb") as handle:
        raw = tomllib.load(handle)

    lsystem_raw = raw.get("lsystem")
    if not isinstance(lsystem_raw, Mapping):
        raise GrammarError("Missing [lsystem] section.")
    grammar_file = lsystem_raw.get("grammar_file")
    if not isinstance(grammar_file, str) or not grammar_file.strip():
        raise GrammarError("Missing lsystem.grammar_file entry.")
    grammar_path = Path(grammar_file)
    if not grammar_path.is_absolute():
        grammar_path = (config_path.parent / grammar_path).resolve()
    grammar = parse_grammar_file(grammar_path)

    axiom_override = lsystem_raw.get("axiom")
    if isinstance(axiom_override, str) and axiom_override.strip():
        grammar = replace(grammar, axiom=axiom_override.strip())
    steps = _parse_int(lsystem_raw.get("steps", grammar.steps), "lsystem.steps", minimum=0)
    seed = lsystem_raw.get("seed", grammar.seed)
    if seed is not None:
        seed = _parse_int(seed, "lsystem.seed")

    output_raw = raw.get("output", {})
    if not isinstance(output_raw, Mapping):
        raise GrammarError("[output] must be a table if provided.")
    output_format = str(output_raw.get("format", "trace"))
    if output_format not in OUTPUT_FORMATS:
        raise GrammarError(f"output.format must be one of {OUTPUT_FORMATS}, got '{output_format}'.")
    max_length = _parse_int(output_raw.get("max_length", 100_000), "output.max_length", minimum=1)
    max_steps = _parse_int(output_raw.get("max_steps", 1_000), "output.max_steps", minimum=0)
    if steps > max_steps:
        raise GrammarError(f"lsystem.steps must be <= output.max_steps ({max_steps}), got {steps}.")

    return Config(
        grammar=grammar,
        steps=steps,
        seed=seed,
        output=OutputConfig(format=output_format, max_length=max_length, max_steps=max_steps),
    )
