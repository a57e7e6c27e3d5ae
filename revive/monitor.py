from datetime import datetime, timedelta
from logging import getLogger
from socket import gethostname
from time import sleep
from typing import Iterator, Optional

from docker.errors import DockerException
from requests.exceptions import RequestException
from urllib3.exceptions import HTTPError

from .config import Settings
from .cooldown import CooldownTracker
from .notifier import Notifier, should_notify
from .runtime import UNHEALTHY_ACTION, HealthEvent, RuntimeClient, parse_event
from .utils import display_name, now_utc, short_id

LOG = getLogger(__name__)
STREAM_ERRORS = (DockerException, RequestException, HTTPError, OSError, ValueError)
RESTART_ERRORS = (DockerException, RequestException, HTTPError, OSError)


def notification_title(settings: Settings) -> str:
    return f"{settings.notify_title} on {gethostname()}"


def _send(notify: Notifier, settings: Settings, event: str, message: str) -> None:
    if not should_notify(settings, event):
        return
    notify(notification_title(settings), message)


def is_actionable(event: HealthEvent, settings: Settings) -> bool:
    if event.action != UNHEALTHY_ACTION:
        return False
    if settings.monitor_label is not None and settings.monitor_label not in event.attributes:
        LOG.debug("Ignoring %s; missing label %s", short_id(event.identity), settings.monitor_label)
        return False
    return True


def handle_event(
    event: HealthEvent,
    runtime: RuntimeClient,
    tracker: CooldownTracker,
    settings: Settings,
    notify: Notifier,
    now: Optional[datetime] = None,
) -> bool:
    """React to a single health event.

    Returns True when a restart was permitted (and attempted, unless running
    dry). The cooldown record is written before the restart is issued and is
    kept even when the restart fails; there is no retry.
    """
    if not is_actionable(event, settings):
        return False
    current_time = now or now_utc()
    if not tracker.permit(event.identity, current_time, timedelta(seconds=settings.cooldown_seconds)):
        return False

    name = display_name(event.attributes)
    label = f"{name} ({short_id(event.identity)})"
    message = f"Unhealthy container detected: {label}"
    LOG.warning(message)
    _send(notify, settings, "unhealthy", message)

    if settings.dry_run:
        LOG.info("Dry-run enabled; not restarting %s", label)
        return True

    try:
        runtime.restart(event.identity, settings.restart_timeout_seconds)
    except RESTART_ERRORS as error:
        message = f"Failed to restart container {name}: {error}"
        LOG.error(message)
        _send(notify, settings, "failure", message)

    message = f"Restarted: {label}"
    LOG.info(message)
    _send(notify, settings, "restart", message)
    return True


def resubscribe(runtime: RuntimeClient, settings: Settings, notify: Notifier) -> Iterator[dict]:
    attempts = max(1, settings.reconnect_attempts)
    delay = settings.reconnect_backoff_seconds
    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        LOG.info("Attempting to re-establish connection in %ss (attempt %s/%s)", delay, attempt, attempts)
        sleep(delay)
        try:
            stream = runtime.reconnect()
        except STREAM_ERRORS as error:
            LOG.warning("Reconnect attempt %s/%s failed: %s", attempt, attempts, error)
            last_error = error
            delay = min(delay * 2, settings.reconnect_max_backoff_seconds)
            continue
        message = "Successfully re-established connection to Docker daemon."
        LOG.info(message)
        _send(notify, settings, "reconnect", message)
        return stream
    message = f"Failed to re-establish Docker connection after {attempts} attempts: {last_error}"
    LOG.critical(message)
    _send(notify, settings, "failure", message)
    raise SystemExit(message)


def watch(runtime: RuntimeClient, tracker: CooldownTracker, settings: Settings, notify: Notifier) -> None:
    try:
        stream = runtime.subscribe()
    except STREAM_ERRORS as error:
        message = f"Unable to subscribe to Docker events: {error}"
        _send(notify, settings, "failure", message)
        raise SystemExit(message) from error
    LOG.info(
        "Watching health events (cooldown %ss, restart timeout %ss)",
        settings.cooldown_seconds,
        settings.restart_timeout_seconds,
    )
    while True:
        try:
            raw = next(stream)
        except StopIteration:
            reason = "stream closed by daemon"
        except STREAM_ERRORS as error:
            reason = str(error) or error.__class__.__name__
        else:
            event = parse_event(raw)
            if event is not None:
                handle_event(event, runtime, tracker, settings, notify)
            continue
        LOG.error("Error from Docker event stream: %s", reason)
        stream = resubscribe(runtime, settings, notify)
