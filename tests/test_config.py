from pathlib import Path

import pytest

from plsystem.config import Rule, build_lsystem, load_config, parse_grammar, parse_grammar_file
from plsystem.errors import GrammarError


class TestGrammar:
    def test_table_productions(self, config_path: Path) -> None:
        grammar = parse_grammar_file(config_path.parent / "grammars" / "spiral.toml")
        assert grammar.axiom == "A"
        assert grammar.steps == 3
        assert grammar.seed == 1
        assert grammar.rules == (
            Rule(match="A", produce="F(1) ?P(x,y) - A"),
            Rule(match="F(k)", produce="F(k+1)"),
        )
        assert dict(grammar.reserved) == {"P": "position"}

    def test_string_productions_with_probability(self) -> None:
        grammar = parse_grammar(
            {"grammar": {"axiom": "B(1)", "productions": ["B(n) -> F(n) B(n*2) : 0.25", "F(k) -> F(k)"]}}
        )
        assert grammar.rules[0] == Rule(match="B(n)", produce="F(n) B(n*2)", probability=0.25)
        assert grammar.rules[1].probability == 1.0

    def test_default_reserved_provider(self) -> None:
        grammar = parse_grammar({"grammar": {"axiom": "A"}})
        assert dict(grammar.reserved) == {"P": "position"}
        assert grammar.rules == ()

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"grammar": {"axiom": ""}},
            {"grammar": {"axiom": "A", "productions": {"A": "B"}}},
            {"grammar": {"axiom": "A", "productions": ["A B"]}},
            {"grammar": {"axiom": "A", "productions": [{"produce": "B"}]}},
            {"grammar": {"axiom": "A", "productions": [{"match": "A", "produce": "B", "probability": 2}]}},
            {"grammar": {"axiom": "A", "steps": -1}},
            {"grammar": {"axiom": "A", "seed": "one"}},
            {"grammar": {"axiom": "A", "reserved": {"P": "velocity"}}},
        ],
    )
    def test_invalid_grammars(self, data: dict) -> None:
        with pytest.raises(GrammarError):
            parse_grammar(data)

    def test_missing_grammar_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            parse_grammar_file(tmp_path / "nope.toml")


class TestConfig:
    def test_load_config(self, config_path: Path) -> None:
        config = load_config(config_path)
        assert config.steps == 2
        assert config.seed == 1
        assert config.output.format == "trace"
        assert config.output.max_length == 1000
        assert config.output.max_steps == 50
        assert config.grammar.path == (config_path.parent / "grammars" / "spiral.toml").resolve()

    def test_axiom_override(self, config_path: Path) -> None:
        config_path.write_text(
            '[lsystem]\ngrammar_file = "grammars/spiral.toml"\naxiom = "F(5) A"\n', encoding="utf-8"
        )
        config = load_config(config_path)
        assert config.grammar.axiom == "F(5) A"
        assert config.steps == 3

    def test_invalid_output_format(self, config_path: Path) -> None:
        config_path.write_text(
            '[lsystem]\ngrammar_file = "grammars/spiral.toml"\n[output]\nformat = "svg"\n', encoding="utf-8"
        )
        with pytest.raises(GrammarError):
            load_config(config_path)

    def test_steps_bounded_by_max_steps(self, config_path: Path) -> None:
        config_path.write_text(
            '[lsystem]\ngrammar_file = "grammars/spiral.toml"\nsteps = 20\n[output]\nmax_steps = 10\n', encoding="utf-8"
        )
        with pytest.raises(GrammarError, match="max_steps"):
            load_config(config_path)

    def test_default_max_steps(self, config_path: Path) -> None:
        config_path.write_text('[lsystem]\ngrammar_file = "grammars/spiral.toml"\n', encoding="utf-8")
        assert load_config(config_path).output.max_steps == 1_000

    def test_missing_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[output]\n", encoding="utf-8")
        with pytest.raises(GrammarError):
            load_config(path)
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")


class TestBuild:
    def test_build_and_step(self, config_path: Path) -> None:
        config = load_config(config_path)
        lsystem = build_lsystem(config.grammar)
        lsystem.step()
        assert lsystem.trace == "F(1)?P(0,1)-A"
        lsystem.step()
        assert lsystem.trace.startswith("F(2)?P(")

    def test_seed_override(self) -> None:
        grammar = parse_grammar({"grammar": {"axiom": "A", "seed": 5}})
        assert build_lsystem(grammar).seed == 5
        assert build_lsystem(grammar, seed=9).seed == 9

    def test_bad_production_syntax(self) -> None:
        grammar = parse_grammar({"grammar": {"axiom": "A", "productions": ["A -> F(1"]}})
        with pytest.raises(GrammarError):
            build_lsystem(grammar)

    def test_query_values_usable_by_later_rules(self) -> None:
        grammar = parse_grammar({"grammar": {"axiom": "?P(x,y) B", "productions": ["B -> F(x)"]}})
        lsystem = build_lsystem(grammar)
        lsystem.register("P", lambda: (3, 4))
        assert lsystem.step() is True
        assert lsystem.trace == "?P(3,4)F(3)"
        assert "x" in lsystem.environment
