"""
Configuration for Porkbun DNS Gateway.

Settings come from three layers; each one overrides the one before it:

1. model defaults,
2. the TOML file (``--config``, else ``./config.toml`` when present),
3. command-line options.

The Porkbun key pair may also be omitted from both and supplied through the
``PORKBUN_API_KEY`` / ``PORKBUN_SECRET_API_KEY`` environment variables; see
``resolve_credentials``.
"""

from __future__ import annotations

import argparse
import copy
import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from porkbun_gateway.client import HTTP_TIMEOUT, PORKBUN_API_BASE
from porkbun_gateway.exceptions import CredentialsError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any, Final


API_KEY_ENV: Final[str] = "PORKBUN_API_KEY"
SECRET_API_KEY_ENV: Final[str] = "PORKBUN_SECRET_API_KEY"

DEFAULT_CONFIG_FILE: Final[Path] = Path("config.toml")

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """
    The configuration file or options could not be turned into a ``Config``.

    Attributes
    ----------
    config_path : Path | None
        The file being loaded, if any.
    """

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        self.config_path = config_path
        super().__init__(message)


class _Section(BaseModel):
    model_config = {"extra": "forbid"}


class ServerConfig(_Section):
    """``[server]``: where the adapter listens."""

    host: str = "127.0.0.1"
    port: int = 38090


class AuthConfig(_Section):
    """``[auth]``: bearer tokens accepted by the adapter."""

    enabled: bool = False
    tokens: list[str] = []


class PorkbunConfig(_Section):
    """
    ``[porkbun]``: the remote API.

    Attributes
    ----------
    api_key : str | None
        API key; ``None`` defers to ``PORKBUN_API_KEY``.
    secret_api_key : str | None
        Secret API key; ``None`` defers to ``PORKBUN_SECRET_API_KEY``.
    base_url : str
        API base URL.
    timeout : float
        Upper bound in seconds for each remote call.
    """

    api_key: str | None = None
    secret_api_key: str | None = None
    base_url: str = PORKBUN_API_BASE
    timeout: float = Field(default=HTTP_TIMEOUT, gt=0)


class LoggingConfig(_Section):
    """``[logging]``: level and optional log file."""

    level: str = "INFO"
    file_enabled: bool = False
    file_path: str = "/var/log/porkbun-gateway.log"

    @property
    def file_path_as_path(self) -> Path:
        """The log file with ``~`` expanded."""
        return Path(self.file_path).expanduser()


class HealthConfig(_Section):
    """``[health]``: whether ``/health`` is served."""

    enabled: bool = False


class Config(_Section):
    """The complete gateway configuration, one attribute per TOML table."""

    server: ServerConfig = ServerConfig()
    auth: AuthConfig = AuthConfig()
    porkbun: PorkbunConfig = PorkbunConfig()
    logging: LoggingConfig = LoggingConfig()
    health: HealthConfig = HealthConfig()


def resolve_credentials(
    config: PorkbunConfig,
    environ: Mapping[str, str] | None = None,
) -> tuple[str, str]:
    """
    Resolve the Porkbun API key pair.

    A value set in ``[porkbun]`` (or on the command line) wins over the
    environment, even when it is empty.

    Parameters
    ----------
    config : PorkbunConfig
        The ``[porkbun]`` section.
    environ : Mapping[str, str] | None, optional
        Environment to fall back to. If None, uses os.environ.

    Returns
    -------
    tuple[str, str]
        ``(api_key, secret_api_key)``.

    Raises
    ------
    CredentialsError
        If either value is missing or empty; ``missing`` names the fields.
    """
    if environ is None:
        environ = os.environ

    resolved: dict[str, str] = {}
    problems: list[str] = []
    for field, env_var, label in (
        ("api_key", API_KEY_ENV, "API key"),
        ("secret_api_key", SECRET_API_KEY_ENV, "secret API key"),
    ):
        value = getattr(config, field)
        resolved[field] = environ.get(env_var, "") if value is None else value
        if not resolved[field]:
            problems.append(
                f"Missing Porkbun {label}: set [porkbun] {field} in the "
                f"configuration or use the {env_var} environment variable.",
            )

    if problems:
        missing = [field for field, value in resolved.items() if not value]
        raise CredentialsError("\n".join(problems), missing)

    return resolved["api_key"], resolved["secret_api_key"]


# Settings whose rejected values are never echoed back
_SECRET_SETTINGS: Final[tuple[str, ...]] = (
    "porkbun",
    "porkbun.api_key",
    "porkbun.secret_api_key",
)

# What a setting should have looked like, by pydantic error type
_EXPECTED: Final[dict[str, str]] = {
    "int_parsing": "an integer",
    "int_type": "an integer",
    "int_from_float": "an integer",
    "float_parsing": "a number",
    "float_type": "a number",
    "greater_than": "a positive number",
    "bool_parsing": "true or false",
    "bool_type": "true or false",
    "string_type": "a string",
    "list_type": "a list of strings",
    "model_type": "a table",
}


def _describe_error(err: Mapping[str, Any]) -> str:
    setting = ".".join(str(loc) for loc in err["loc"])
    if err["type"] == "extra_forbidden":
        return f"  [{setting}]: unknown setting"
    value = err["input"]
    expected = _EXPECTED.get(err["type"])
    if setting in _SECRET_SETTINGS:
        return f"  [{setting}]: expected {expected or 'a string'}, got {type(value).__name__}"
    shown = f'"{value}"' if isinstance(value, str) else repr(value)
    if expected is None:
        return f"  [{setting}]: {err['msg']} (value: {shown})"
    return f"  [{setting}]: expected {expected}, got {type(value).__name__} {shown}"


def build_config(data: Mapping[str, Any], config_path: Path | None = None) -> Config:
    """
    Validate merged settings and build the ``Config``.

    Parameters
    ----------
    data : Mapping[str, Any]
        Settings keyed by table, as read from TOML.
    config_path : Path | None, optional
        The file the settings came from, named in error messages.

    Returns
    -------
    Config
        The validated configuration.

    Raises
    ------
    ConfigValidationError
        Listing every invalid or unknown setting, one per line.
    """
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        where = f' in "{config_path}"' if config_path else ""
        lines = [f"Configuration error{where}:"]
        lines.extend(_describe_error(err) for err in e.errors())
        raise ConfigValidationError("\n".join(lines), config_path) from e


def read_config_file(config_path: Path) -> dict[str, Any]:
    """
    Read a TOML configuration file.

    Raises
    ------
    ConfigValidationError
        If the file is missing, unreadable or not valid TOML.
    """
    logger.info('Loading configuration from "%s".', config_path)
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        msg = f"Configuration file not found: {config_path}"
        raise ConfigValidationError(msg, config_path) from e
    except tomllib.TOMLDecodeError as e:
        msg = f'Failed to parse configuration file "{config_path}": {e}'
        raise ConfigValidationError(msg, config_path) from e
    except OSError as e:
        msg = f'Cannot read configuration file "{config_path}": {e}'
        raise ConfigValidationError(msg, config_path) from e


def merge_config(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, table by table."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


# Command-line destination -> (table, setting)
CLI_OVERRIDES: Final[dict[str, tuple[str, str]]] = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "auth_enabled": ("auth", "enabled"),
    "auth_tokens": ("auth", "tokens"),
    "api_key": ("porkbun", "api_key"),
    "secret_api_key": ("porkbun", "secret_api_key"),
    "base_url": ("porkbun", "base_url"),
    "timeout": ("porkbun", "timeout"),
    "log_level": ("logging", "level"),
    "log_file_enabled": ("logging", "file_enabled"),
    "log_file_path": ("logging", "file_path"),
    "health_enabled": ("health", "enabled"),
}


def _add_switch(group: argparse._ArgumentGroup, name: str, what: str) -> None:
    switch = group.add_mutually_exclusive_group()
    dest = name.replace("-", "_") + "_enabled"
    switch.add_argument(
        f"--{name}-enabled", action="store_true", dest=dest, default=None, help=f"Enable {what}",
    )
    switch.add_argument(
        f"--{name}-disabled", action="store_false", dest=dest, default=None, help=f"Disable {what}",
    )


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line options.

    Every option defaults to None, meaning "keep the file's value"; see
    ``CLI_OVERRIDES`` for where each one lands.

    Parameters
    ----------
    args : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed options.
    """
    parser = argparse.ArgumentParser(
        prog="porkbun-gateway",
        description="Reconcile DNS records and domain name servers on Porkbun.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"TOML configuration file (default: ./{DEFAULT_CONFIG_FILE} if present)",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help="Address to bind to")
    server.add_argument("--port", type=int, help="Port to listen on")

    auth = parser.add_argument_group("authentication")
    _add_switch(auth, "auth", "bearer token authentication")
    auth.add_argument(
        "--auth-tokens",
        nargs="+",
        action="extend",
        metavar="TOKEN",
        help="Accepted bearer tokens",
    )

    porkbun = parser.add_argument_group("porkbun")
    porkbun.add_argument("--api-key", help=f"API key (default: ${API_KEY_ENV})")
    porkbun.add_argument(
        "--secret-api-key",
        help=f"Secret API key (default: ${SECRET_API_KEY_ENV})",
    )
    porkbun.add_argument("--base-url", help="API base URL")
    porkbun.add_argument("--timeout", type=float, help="Seconds allowed per API call")

    log = parser.add_argument_group("logging")
    log.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, help="Log level")
    _add_switch(log, "log-file", "logging to a file")
    log.add_argument("--log-file-path", help="Log file path")

    _add_switch(parser.add_argument_group("health"), "health", 'the "/health" endpoint')

    return parser.parse_args(args)


def cli_overrides(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    """Collect the options that were given, keyed by table and setting."""
    overrides: dict[str, dict[str, Any]] = {}
    for dest, (table, setting) in CLI_OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides.setdefault(table, {})[setting] = value
    return overrides


def load_config(args: argparse.Namespace | None = None) -> Config:
    """
    Build the configuration from the file and command-line options.

    Parameters
    ----------
    args : argparse.Namespace | None, optional
        Parsed options. If None, ``sys.argv`` is parsed.

    Returns
    -------
    Config
        The validated configuration.

    Raises
    ------
    ConfigValidationError
        If the file cannot be read or a setting is invalid.
    """
    if args is None:
        args = parse_args()

    config_path: Path | None = args.config.expanduser() if args.config else None
    if config_path is None and DEFAULT_CONFIG_FILE.exists():
        config_path = DEFAULT_CONFIG_FILE

    data = read_config_file(config_path) if config_path is not None else {}
    return build_config(merge_config(data, cli_overrides(args)), config_path)
