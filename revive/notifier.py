from http.client import HTTPConnection, HTTPSConnection
from json import dumps
from logging import getLogger
from shutil import which
from subprocess import PIPE, STDOUT, SubprocessError, run
from typing import Callable
from urllib.parse import urlencode, urlsplit

from .config import Settings

LOG = getLogger(__name__)
APPRISE_TIMEOUT_SECONDS = 30
NOTIFY_TIMEOUT_SECONDS = 10

Notifier = Callable[[str, str], None]


def should_notify(settings: Settings, event: str) -> bool:
    return event in settings.notifications


def notify_pushover(settings: Settings, title: str, message: str) -> None:
    if settings.pushover_token is None or settings.pushover_user is None:
        LOG.debug("Pushover disabled; missing token or user")
        return

    endpoint = urlsplit(settings.pushover_api)
    connection = HTTPSConnection(endpoint.netloc, timeout=NOTIFY_TIMEOUT_SECONDS)
    body = urlencode(
        {
            "token": settings.pushover_token,
            "user": settings.pushover_user,
            "title": title,
            "message": message,
        }
    ).encode("ascii")
    path = endpoint.path or "/"
    if endpoint.query:
        path = f"{path}?{endpoint.query}"

    try:
        connection.request(
            "POST", path, body=body, headers={"Content-Type": "application/x-www-form-urlencoded"}
        )
        response = connection.getresponse()
        if response.status >= 300:
            LOG.warning("Pushover returned %s: %s", response.status, response.reason)
    except OSError as error:
        LOG.warning("Failed to send Pushover notification: %s", error)
    finally:
        connection.close()


def notify_webhook(settings: Settings, title: str, message: str) -> None:
    if settings.webhook_url is None:
        LOG.debug("Webhook disabled; missing URL")
        return

    endpoint = urlsplit(settings.webhook_url)
    if endpoint.scheme == "https":
        connection = HTTPSConnection(endpoint.netloc, timeout=NOTIFY_TIMEOUT_SECONDS)
    else:
        connection = HTTPConnection(endpoint.netloc, timeout=NOTIFY_TIMEOUT_SECONDS)

    body = dumps({"title": title, "message": message}).encode("utf-8")
    path = endpoint.path or "/"
    if endpoint.query:
        path = f"{path}?{endpoint.query}"

    try:
        connection.request(
            "POST", path, body=body, headers={"Content-Type": "application/json"}
        )
        response = connection.getresponse()
        if response.status >= 300:
            LOG.warning("Webhook returned %s: %s", response.status, response.reason)
    except OSError as error:
        LOG.warning("Failed to send webhook notification: %s", error)
    finally:
        connection.close()


def notify_apprise(settings: Settings, title: str, message: str) -> None:
    if not _apprise_configured(settings):
        LOG.debug("Apprise disabled; neither enabled nor given URLs")
        return

    # without positional URLs apprise falls back to its own config file
    command = [settings.apprise_command, "-t", title, "-b", message]
    if settings.apprise_urls:
        command.extend(settings.apprise_urls.split())
    try:
        result = run(command, stdout=PIPE, stderr=STDOUT, timeout=APPRISE_TIMEOUT_SECONDS, check=False)
    except (OSError, SubprocessError) as error:
        LOG.warning("Failed to send notification: %s", error)
        return
    if result.returncode != 0:
        output = result.stdout.decode("utf-8", errors="replace").strip()
        LOG.warning("Failed to send notification: exit status %s. Output: %s", result.returncode, output)


def _apprise_configured(settings: Settings) -> bool:
    return settings.apprise_enabled or bool(settings.apprise_urls)


def build_notifier(settings: Settings) -> Notifier:
    backends: list[Callable[[Settings, str, str], None]] = []
    if settings.pushover_token is not None and settings.pushover_user is not None:
        backends.append(notify_pushover)
    if settings.webhook_url is not None:
        backends.append(notify_webhook)
    if _apprise_configured(settings):
        if which(settings.apprise_command) is None:
            LOG.warning("Apprise enabled but %s is not on PATH", settings.apprise_command)
        backends.append(notify_apprise)
    if not backends:
        LOG.info("No notification backends configured; notifications go to the log only")

    def _notify(title: str, message: str) -> None:
        for backend in backends:
            try:
                backend(settings, title, message)
            except Exception as error:  # noqa: BLE001
                LOG.warning("Notification via %s failed: %s", backend.__name__, error)

    return _notify
