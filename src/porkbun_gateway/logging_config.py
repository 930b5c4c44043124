"""
Logging setup for Porkbun DNS Gateway.

The gateway holds a registrar API key pair, and the Porkbun API expects it in
every request body. Every handler installed here therefore carries a
``SensitiveFilter`` which keeps only a short prefix of each credential it
recognizes: the ``apikey``/``secretapikey`` body fields, ``api_key=`` style
pairs, and bearer tokens used against the adapter itself.
"""

from __future__ import annotations

import copy
import logging
import logging.handlers
import re
import sys
from typing import TYPE_CHECKING

from uvicorn.config import LOGGING_CONFIG

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Any, Final

    from porkbun_gateway.config import LoggingConfig


LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Number of leading characters left readable in a masked credential
VISIBLE_CHARS: Final[int] = 6
MASK: Final[str] = "******"

# Loggers that can see request bodies or credentials
MASKED_LOGGERS: Final[tuple[str, ...]] = ("porkbun_gateway", "httpx")

# Every pattern captures ``prefix``, ``value`` and ``suffix``; only ``value``
# is shortened.
CREDENTIAL_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    # Adapter bearer token
    re.compile(
        r"(?P<prefix>\bBearer\s+)(?P<value>[^\s\"',]*)(?P<suffix>)",
        re.IGNORECASE,
    ),
    # Porkbun request body, JSON or Python repr: "apikey": "..."
    re.compile(
        r"(?P<prefix>(?P<quote>[\"'])(?:secret)?apikey(?P=quote)\s*:\s*(?P=quote))"
        r"(?P<value>[^\"']*)(?P<suffix>(?P=quote))",
        re.IGNORECASE,
    ),
    # Settings repr and query-style pairs: api_key='...', secret_api_key=...
    re.compile(
        r"(?P<prefix>\b(?:secret_?)?api_?key=(?P<quote>[\"']?))"
        r"(?P<value>[^\s,&\"']*)(?P<suffix>(?P=quote))",
        re.IGNORECASE,
    ),
)


def _shorten(match: re.Match[str]) -> str:
    value = match.group("value")[:VISIBLE_CHARS]
    return f"{match.group('prefix')}{value}{MASK}{match.group('suffix')}"


def mask_credentials(text: str) -> str:
    """
    Mask every credential found in ``text``.

    Parameters
    ----------
    text : str
        A log message or argument.

    Returns
    -------
    str
        ``text`` with each credential cut to its first characters followed
        by ``******``.
    """
    for pattern in CREDENTIAL_PATTERNS:
        text = pattern.sub(_shorten, text)
    return text


def _mask_arg(value: Any) -> Any:
    return mask_credentials(value) if isinstance(value, str) else value


class SensitiveFilter(logging.Filter):
    """
    Logging filter that masks Porkbun credentials and bearer tokens.

    Both the message and its ``%`` arguments are rewritten, so uvicorn
    access lines and ``logger.debug("%s", body)`` calls are covered alike.
    Records are never dropped.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = mask_credentials(str(record.msg))
        if isinstance(record.args, dict):
            record.args = {key: _mask_arg(arg) for key, arg in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(_mask_arg(arg) for arg in record.args)
        return True


def _masked(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SensitiveFilter())
    return handler


def _prepare_log_file(log_path: Path) -> None:
    """Create the log file's directory and the file, or exit."""
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.touch(exist_ok=True)
    except OSError as e:
        logging.getLogger("porkbun_gateway").critical(
            'Cannot write log file "%s": %s', log_path, e,
        )
        sys.exit(1)


def setup_logging(config: LoggingConfig) -> None:
    """
    Install console (and optionally file) handlers on the gateway loggers.

    The same masked handlers are attached to the package logger and to
    ``httpx``, whose request lines are emitted on the gateway's behalf.
    Neither logger propagates to the root logger.

    Parameters
    ----------
    config : LoggingConfig
        The ``[logging]`` section.
    """
    handlers = [_masked(logging.StreamHandler())]
    if config.file_enabled:
        _prepare_log_file(config.file_path_as_path)
        handlers.append(
            _masked(
                logging.handlers.WatchedFileHandler(
                    str(config.file_path_as_path),
                    encoding="utf-8",
                ),
            ),
        )

    level = getattr(logging, config.level.upper(), logging.INFO)
    for name in MASKED_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    if config.file_enabled:
        logging.getLogger("porkbun_gateway").info(
            'File logging enabled: "%s".', config.file_path_as_path,
        )


def build_uvicorn_log_config(config: LoggingConfig) -> dict[str, Any]:
    """
    Derive uvicorn's ``log_config`` from its defaults.

    uvicorn's console handlers keep their colored formatters and gain the
    credential filter. With file logging enabled, a ``file`` handler is added
    to the ``uvicorn`` and ``uvicorn.access`` loggers (``uvicorn.error``
    propagates to ``uvicorn``).

    Parameters
    ----------
    config : LoggingConfig
        The ``[logging]`` section.

    Returns
    -------
    dict[str, Any]
        A ``logging.config.dictConfig`` mapping for ``uvicorn.run``.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})["sensitive"] = {
        "()": f"{__name__}.SensitiveFilter",
    }
    for handler in log_config["handlers"].values():
        handler.setdefault("filters", []).append("sensitive")

    if not config.file_enabled:
        return log_config

    log_path = config.file_path_as_path
    _prepare_log_file(log_path)
    log_config["formatters"]["file"] = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}
    log_config["handlers"]["file"] = {
        "class": "logging.handlers.WatchedFileHandler",
        "filename": str(log_path),
        "encoding": "utf-8",
        "formatter": "file",
        "filters": ["sensitive"],
    }
    for name in ("uvicorn", "uvicorn.access"):
        log_config["loggers"][name]["handlers"].append("file")
    return log_config
