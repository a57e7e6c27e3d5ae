from datetime import datetime, timezone
from logging import FileHandler, Formatter, basicConfig, getLogger
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
LOG = getLogger(__name__)


def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, level=level)
    if log_file is None:
        return
    try:
        handler = FileHandler(log_file, encoding="utf-8")
    except OSError as error:
        LOG.warning("Logging to console only; cannot open %s: %s", log_file, error)
        return
    handler.setFormatter(Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    getLogger().addHandler(handler)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def short_id(identifier: Optional[str]) -> str:
    if not identifier:
        return "unknown"
    return identifier.split(":")[-1][:12]


def display_name(attributes: Optional[dict], default: str = "unknown") -> str:
    if attributes is None:
        return default
    name = attributes.get("name")
    if not name:
        return default
    return name.removeprefix("/")
