from dataclasses import dataclass, field
from logging import getLogger
from time import sleep
from typing import Iterator, Optional

from docker import DockerClient
from docker.errors import DockerException

from .config import Settings

LOG = getLogger(__name__)
EVENT_FILTERS = {"type": "container", "event": "health_status"}
UNHEALTHY_ACTION = "health_status: unhealthy"


@dataclass(frozen=True)
class HealthEvent:
    action: str
    identity: str
    attributes: dict = field(default_factory=dict)


def parse_event(raw: object) -> Optional[HealthEvent]:
    if not isinstance(raw, dict):
        return None
    actor = raw.get("Actor") or {}
    identity = actor.get("ID") or raw.get("id")
    action = raw.get("Action") or raw.get("status")
    if not identity or not action:
        LOG.debug("Ignoring malformed event: %s", raw)
        return None
    return HealthEvent(action=action, identity=identity, attributes=actor.get("Attributes") or {})


def build_client_with_retry(settings: Settings) -> DockerClient:
    attempts = settings.connect_retries + 1
    last_error: Optional[DockerException] = None
    for attempt in range(1, attempts + 1):
        try:
            return DockerClient(base_url=settings.docker_host)
        except DockerException as error:
            last_error = error
            if attempt < attempts:
                delay = settings.reconnect_backoff_seconds * attempt
                LOG.warning("Docker connection attempt %s/%s failed: %s; retrying in %ss", attempt, attempts, error, delay)
                sleep(delay)
    raise SystemExit(f"Unable to connect to Docker after {attempts} attempts: {last_error}")


class RuntimeClient:
    """Thin wrapper over the Docker SDK used by the watch loop."""

    def __init__(self, settings: Settings, client: Optional[DockerClient] = None):
        self.settings = settings
        self.client = client if client is not None else build_client_with_retry(settings)

    def subscribe(self) -> Iterator[dict]:
        return iter(self.client.events(decode=True, filters=dict(EVENT_FILTERS)))

    def restart(self, identity: str, timeout: int) -> None:
        self.client.api.restart(identity, timeout=timeout)

    def reconnect(self) -> Iterator[dict]:
        client = DockerClient(base_url=self.settings.docker_host)
        stream = iter(client.events(decode=True, filters=dict(EVENT_FILTERS)))
        # the broken client and its stream are dropped, not closed
        self.client = client
        return stream
