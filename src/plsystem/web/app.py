from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
import uvicorn

from ..config import Config, load_config
from ..errors import LSystemError
from ..main import derive


class DerivationManager:
    def __init__(self, config_path: Path) -> None:
        self._config_path = config_path
        self._config: Optional[Config] = None

    def get_config(self, reload: bool = False) -> Config:
        if reload or self._config is None:
            self._config = load_config(self._config_path)
        return self._config


def create_app(config_path: Path) -> FastAPI:
    manager = DerivationManager(config_path)
    # Fail at startup rather than on the first request.
    manager.get_config()

    app = FastAPI(title="Parametric L-system", version="0.1.0")

    @app.get("/api/grammar")
    async def get_grammar(reload: Optional[int] = None) -> JSONResponse:
        try:
            config = manager.get_config(reload=bool(reload))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse(config.grammar.to_dict())

    @app.get("/api/derivation")
    async def get_derivation(steps: Optional[int] = None, seed: Optional[int] = None) -> JSONResponse:
        config = manager.get_config()
        effective_steps = steps if steps is not None else config.steps
        if effective_steps < 0:
            raise HTTPException(status_code=422, detail="steps must be >= 0")
        if effective_steps > config.output.max_steps:
            raise HTTPException(status_code=422, detail=f"steps must be <= {config.output.max_steps}")
        effective_seed = seed if seed is not None else config.seed
        try:
            payload = derive(
                config.grammar,
                effective_steps,
                seed=effective_seed,
                max_length=config.output.max_length,
            )
        except (LSystemError, ValueError, ArithmeticError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse(payload)

    return app


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve L-system derivations over HTTP.")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config/default_config.toml"),
        help="Path to the L-system configuration file.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    args = parser.parse_args(argv)

    config_path = args.config.resolve()
    app = create_app(config_path)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
