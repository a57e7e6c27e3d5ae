from logging import getLogger
from typing import Optional, Sequence

from .config import load_settings
from .cooldown import CooldownTracker
from .monitor import notification_title, watch
from .notifier import build_notifier, should_notify
from .runtime import RuntimeClient, build_client_with_retry
from .utils import configure_logging

LOG = getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = load_settings(argv)
    configure_logging(settings.log_level, settings.log_file)
    notify = build_notifier(settings)
    title = notification_title(settings)
    LOG.info("Starting revive")
    try:
        client = build_client_with_retry(settings)
    except SystemExit as error:
        LOG.critical("%s", error)
        if should_notify(settings, "failure"):
            notify(title, f"Failed to create Docker client: {error}")
        raise
    message = "Successfully connected to Docker daemon."
    LOG.info(message)
    if should_notify(settings, "startup"):
        notify(title, message)
    runtime = RuntimeClient(settings, client=client)
    watch(runtime, CooldownTracker(), settings, notify)


if __name__ == "__main__":
    main()
