from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Grammar, build_lsystem, load_config
from .errors import LSystemError


def derive(grammar: Grammar, steps: int, seed: Optional[int] = None, max_length: Optional[int] = None) -> Dict[str, Any]:
    """Run ``grammar`` for up to ``steps`` derivations and collect every step."""
    records: List[Dict[str, Any]] = []

    def record(index: int, changed: bool, trace: str) -> None:
        records.append(
            {
                "step": index,
                "changed": changed,
                "trace": trace,
                "length": len(lsystem.patterns),
                "turtle": lsystem.turtle.to_dict(),
            }
        )

    lsystem = build_lsystem(grammar, seed=seed, on_step=record)
    lsystem.run(steps, max_length=max_length)
    truncated = max_length is not None and len(lsystem.patterns) > max_length
    return {
        "axiom": grammar.axiom,
        "seed": lsystem.seed,
        "steps": records,
        "final": lsystem.trace,
        "truncated": truncated,
    }


def _render_traces(payload: Dict[str, Any]) -> str:
    lines = [f"{record['step']:>3}: {record['trace']}" for record in payload["steps"]]
    if payload["truncated"]:
        lines.append("... stopped: sequence exceeded the configured max_length")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Derive a parametric L-system and print each step.")
    parser.add_argument("--config", type=Path, default=Path("config/default_config.toml"),
                        help="Path to config file.")
    parser.add_argument("--steps", type=int, default=None,
                        help="Override the number of derivation steps from the config.")
    parser.add_argument("--seed", type=int, default=None,
                        help="Override the random seed from the config.")
    parser.add_argument("--format", choices=("trace", "json"), default=None,
                        help="Choose the output format.")
    args = parser.parse_args(argv)

    start_time = time.time()
    try:
        config = load_config(args.config)
        steps = args.steps if args.steps is not None else config.steps
        if steps > config.output.max_steps:
            raise ValueError(f"--steps must be <= output.max_steps ({config.output.max_steps}), got {steps}.")
        seed = args.seed if args.seed is not None else config.seed
        payload = derive(config.grammar, steps, seed=seed, max_length=config.output.max_length)
    except (LSystemError, ValueError, ArithmeticError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr, flush=True)
        return 1

    output_format = args.format or config.output.format
    if output_format == "json":
        print(json.dumps(payload, indent=2))
    else:
        print(_render_traces(payload))

    duration = time.time() - start_time
    print(f"Derived {len(payload['steps'])} step(s) in {duration:.3f}s", file=sys.stderr, flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
