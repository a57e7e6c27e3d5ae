from datetime import datetime, timedelta
from logging import getLogger
from typing import Optional

LOG = getLogger(__name__)


class CooldownTracker:
    """Remembers when each container was last restarted.

    Keys are full container ids. Entries are never evicted; a stale entry for
    a removed container only costs a few bytes.
    """

    def __init__(self) -> None:
        self._last_action: dict[str, datetime] = {}

    def __len__(self) -> int:
        return len(self._last_action)

    def __contains__(self, identity: object) -> bool:
        return identity in self._last_action

    def last_action(self, identity: str) -> Optional[datetime]:
        return self._last_action.get(identity)

    def permit(self, identity: str, now: datetime, interval: timedelta) -> bool:
        """Return True and record ``now`` if ``identity`` is out of cooldown."""
        last = self._last_action.get(identity)
        if last is not None and now - last < interval:
            remaining = (interval - (now - last)).total_seconds()
            LOG.debug("Skipping restart for %s; cooldown %.0fs remaining", identity, remaining)
            return False
        self._last_action[identity] = now
        return True
