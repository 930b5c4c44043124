"""
CLI entry point for Porkbun DNS Gateway.

This module provides the command-line interface for starting the server.
"""

from __future__ import annotations

import sys

import uvicorn

from porkbun_gateway.config import (
    ConfigValidationError,
    load_config,
    parse_args,
    resolve_credentials,
)
from porkbun_gateway.exceptions import CredentialsError
from porkbun_gateway.logging_config import build_uvicorn_log_config, setup_logging
from porkbun_gateway.server import set_preloaded_config


def main() -> None:
    """
    Start the Porkbun DNS Gateway server.

    Parse command-line arguments, load configuration, and run the server.
    Missing credentials are reported before the server starts; they are
    verified against the API during application startup.
    """
    args = parse_args()
    try:
        config = load_config(args)
        resolve_credentials(config.porkbun)
    except (ConfigValidationError, CredentialsError) as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    setup_logging(config.logging)

    # Inject the loaded configuration into the server module to prevent
    # re-parsing arguments when the app starts.
    set_preloaded_config(config)

    uvicorn.run(
        "porkbun_gateway.server:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
        access_log=True,
        log_config=build_uvicorn_log_config(config.logging),
    )


if __name__ == "__main__":
    main()
