from argparse import ArgumentParser
from dataclasses import dataclass
from os import getenv
from typing import Optional, Sequence

DEFAULT_DOCKER_HOST = "unix://var/run/docker.sock"
DEFAULT_PUSHOOVER_API = "https://api.pushover.net/1/messages.json"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_NOTIFY_TITLE = "Docker Watchdog"
DEFAULT_APPRISE_COMMAND = "apprise"
DEFAULT_RESTART_TIMEOUT = 10
DEFAULT_COOLDOWN = 30
DEFAULT_CONNECT_RETRIES = 0
DEFAULT_RECONNECT_ATTEMPTS = 3
DEFAULT_RECONNECT_BACKOFF = 5
DEFAULT_RECONNECT_MAX_BACKOFF = 60
ALL_NOTIFICATION_EVENTS = ("startup", "unhealthy", "restart", "failure", "reconnect")


@dataclass(frozen=True)
class Settings:
    docker_host: str
    restart_timeout_seconds: int
    cooldown_seconds: int
    log_file: Optional[str]
    log_level: str
    monitor_label: Optional[str]
    dry_run: bool
    notifications: frozenset[str]
    notify_title: str
    pushover_token: Optional[str]
    pushover_user: Optional[str]
    pushover_api: str
    webhook_url: Optional[str]
    apprise_enabled: bool
    apprise_urls: Optional[str]
    apprise_command: str
    connect_retries: int
    reconnect_attempts: int
    reconnect_backoff_seconds: int
    reconnect_max_backoff_seconds: int


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="revive",
        description="Restart Docker containers that report as unhealthy.",
    )
    parser.add_argument("--timeout", type=int, help="Container restart timeout in seconds")
    parser.add_argument("--cooldown", type=int, help="Pause between restarts per container (seconds)")
    parser.add_argument("--log-file", help="Also append log lines to this file")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING...)")
    parser.add_argument("--docker-host", help="Docker daemon URL")
    parser.add_argument("--label", help="Only restart containers carrying this label")
    parser.add_argument("--notify", help="Comma-separated notification events, or 'all'")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Log restarts without performing them")
    return parser


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    args = build_parser().parse_args(argv)
    return Settings(
        docker_host=args.docker_host or getenv("DOCKER_HOST", DEFAULT_DOCKER_HOST),
        restart_timeout_seconds=_flag_or_env_int(args.timeout, "--timeout", "REVIVE_TIMEOUT", DEFAULT_RESTART_TIMEOUT, minimum=0),
        cooldown_seconds=_flag_or_env_int(args.cooldown, "--cooldown", "REVIVE_COOLDOWN", DEFAULT_COOLDOWN),
        log_file=args.log_file or getenv("REVIVE_LOG_FILE") or None,
        log_level=(args.log_level or getenv("REVIVE_LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper(),
        monitor_label=args.label or getenv("REVIVE_MONITOR_LABEL") or None,
        dry_run=args.dry_run if args.dry_run is not None else _env_bool("REVIVE_DRY_RUN", False),
        notifications=frozenset(_csv_set(args.notify) if args.notify is not None else _env_csv_set("REVIVE_NOTIFICATIONS", "all")),
        notify_title=getenv("REVIVE_NOTIFY_TITLE", DEFAULT_NOTIFY_TITLE),
        pushover_token=getenv("REVIVE_PUSHOVER_TOKEN"),
        pushover_user=getenv("REVIVE_PUSHOVER_USER"),
        pushover_api=getenv("REVIVE_PUSHOVER_API", DEFAULT_PUSHOOVER_API),
        webhook_url=getenv("REVIVE_WEBHOOK_URL"),
        apprise_enabled=_env_bool("REVIVE_APPRISE", False),
        apprise_urls=getenv("REVIVE_APPRISE_URLS"),
        apprise_command=getenv("REVIVE_APPRISE_COMMAND", DEFAULT_APPRISE_COMMAND),
        connect_retries=_env_int("REVIVE_CONNECT_RETRIES", DEFAULT_CONNECT_RETRIES, minimum=0),
        reconnect_attempts=_env_int("REVIVE_RECONNECT_ATTEMPTS", DEFAULT_RECONNECT_ATTEMPTS),
        reconnect_backoff_seconds=_env_int("REVIVE_RECONNECT_BACKOFF", DEFAULT_RECONNECT_BACKOFF, minimum=0),
        reconnect_max_backoff_seconds=_env_int("REVIVE_RECONNECT_MAX_BACKOFF", DEFAULT_RECONNECT_MAX_BACKOFF),
    )


def _flag_or_env_int(value: Optional[int], flag: str, name: str, default: int, minimum: int = 1) -> int:
    if value is None:
        return _env_int(name, default, minimum=minimum)
    if value < minimum:
        raise SystemExit(f"{flag} must be at least {minimum} seconds")
    return value


def _env_bool(name: str, default: bool) -> bool:
    value = getenv(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    return lowered in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    value = getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    if parsed < minimum:
        return default
    return parsed


def _csv_set(value: str) -> set[str]:
    items = {item.strip().lower() for item in value.replace(" ", ",").split(",") if item.strip()}
    if "all" in items:
        return set(ALL_NOTIFICATION_EVENTS)
    return items


def _env_csv_set(name: str, default: str) -> set[str]:
    return _csv_set(getenv(name, default))
