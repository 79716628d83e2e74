from __future__ import annotations

import os
from pathlib import Path

from fastapi import FastAPI

from graphsample import AppConfig, create_application, load_config
from graphsample.application import configure_logging


def _resolve_config_path() -> Path:
    candidate = os.environ.get("APP_CONFIG_PATH")
    if candidate:
        return Path(candidate)
    return Path(__file__).resolve().parent / "config.yaml"


def build_app() -> FastAPI:
    config: AppConfig = load_config(_resolve_config_path())
    configure_logging(config.server.log_level)
    return create_application(config)


app = build_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
