"""Server-side presence registry: connection id → username."""
import logging
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

# Reported for connections that disconnect without ever joining
UNKNOWN_USERNAME = "Unknown"


class ConnectionRegistry:
    """Maps live connection ids to the username they joined with.

    Usernames are not unique: two connections may register the same display
    name. Insertion order is registration order, which is the order
    ``snapshot()`` reports. Re-registering a connection overwrites its name in
    place.
    """

    def __init__(self) -> None:
        self._users: Dict[str, str] = {}

    def register(self, conn_id: str, username: str) -> None:
        self._users[conn_id] = username

    def unregister(self, conn_id: str) -> str:
        """Remove a connection.

        Returns:
            The username it was registered with, or ``UNKNOWN_USERNAME``.
        """
        return self._users.pop(conn_id, UNKNOWN_USERNAME)

    def lookup(self, conn_id: str) -> Optional[str]:
        return self._users.get(conn_id)

    def snapshot(self) -> List[str]:
        """Usernames of all registered connections, in registration order."""
        return list(self._users.values())

    def clear(self) -> None:
        if self._users:
            logger.info(f"[Registry] Draining {len(self._users)} registrations")
        self._users.clear()

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._users

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._users))
