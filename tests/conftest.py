from datetime import datetime, timezone
from typing import Iterable, Optional

import pytest

from revive.config import ALL_NOTIFICATION_EVENTS, Settings

UNHEALTHY = "health_status: unhealthy"
HEALTHY = "health_status: healthy"
ABC_ID = "abc123abc123abc123abc123abc123abc123abc123abc123abc123abc123abcd"
XYZ_ID = "xyz999xyz999xyz999xyz999xyz999xyz999xyz999xyz999xyz999xyz999xyzw"
T0 = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_event(
    action: str = UNHEALTHY,
    identity: str = ABC_ID,
    name: str = "/app",
    labels: Optional[dict] = None,
) -> dict:
    attributes = {"name": name} | (labels or {})
    return {
        "Type": "container",
        "Action": action,
        "status": action,
        "id": identity,
        "Actor": {"ID": identity, "Attributes": attributes},
        "time": 1750000000,
    }


def _stream(items: Iterable):
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


class FakeRuntime:
    def __init__(
        self,
        streams: Optional[list] = None,
        restart_error: Optional[Exception] = None,
        reconnect_errors: Optional[list] = None,
        tracker=None,
    ):
        self.streams = list(streams or [])
        self.restart_error = restart_error
        self.reconnect_errors = list(reconnect_errors or [])
        self.tracker = tracker
        self.subscribe_calls = 0
        self.reconnect_calls = 0
        self.restarts: list[tuple[str, int]] = []
        self.recorded_before_restart: list[bool] = []

    def _next_stream(self):
        return _stream(self.streams.pop(0))

    def subscribe(self):
        self.subscribe_calls += 1
        return self._next_stream()

    def reconnect(self):
        self.reconnect_calls += 1
        if self.reconnect_errors:
            error = self.reconnect_errors.pop(0)
            if error is not None:
                raise error
        return self._next_stream()

    def restart(self, identity: str, timeout: int) -> None:
        if self.tracker is not None:
            self.recorded_before_restart.append(identity in self.tracker)
        self.restarts.append((identity, timeout))
        if self.restart_error is not None:
            raise self.restart_error


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def __call__(self, title: str, message: str) -> None:
        self.messages.append((title, message))

    @property
    def bodies(self) -> list[str]:
        return [body for _title, body in self.messages]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        docker_host="unix://test",
        restart_timeout_seconds=10,
        cooldown_seconds=30,
        log_file=None,
        log_level="INFO",
        monitor_label=None,
        dry_run=False,
        notifications=frozenset(ALL_NOTIFICATION_EVENTS),
        notify_title="Docker Watchdog",
        pushover_token=None,
        pushover_user=None,
        pushover_api="https://example",
        webhook_url=None,
        apprise_enabled=False,
        apprise_urls=None,
        apprise_command="apprise",
        connect_retries=0,
        reconnect_attempts=3,
        reconnect_backoff_seconds=5,
        reconnect_max_backoff_seconds=60,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
