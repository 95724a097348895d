"""Command-line entry point: ``llm-gateway`` or ``python -m llm_gateway``."""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

from llm_gateway.api.app import create_app
from llm_gateway.core.config import GatewayConfig


def main() -> None:
    env_file = os.environ.get("GATEWAY_ENV_FILE", ".env")
    load_dotenv(env_file, override=False)
    config = GatewayConfig.from_env()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        create_app(config=config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
