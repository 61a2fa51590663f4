from pathlib import Path

import pytest

SPIRAL_GRAMMAR = """
[grammar]
axiom = "A"
steps = 3
seed = 1

[[grammar.productions]]
match = "A"
produce = "F(1) ?P(x,y) - A"

[[grammar.productions]]
match = "F(k)"
produce = "F(k+1)"

[grammar.reserved]
P = "position"
"""

CONFIG = """
[lsystem]
grammar_file = "grammars/spiral.toml"
steps = 2

[output]
format = "trace"
max_length = 1000
max_steps = 50
"""


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    grammars = tmp_path / "grammars"
    grammars.mkdir()
    (grammars / "spiral.toml").write_text(SPIRAL_GRAMMAR, encoding="utf-8")
    path = tmp_path / "config.toml"
    path.write_text(CONFIG, encoding="utf-8")
    return path
