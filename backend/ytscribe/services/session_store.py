"""
In-memory session store: payment session id -> entitlement record.

Shared by all in-flight jobs. Loss on restart is acceptable because the
payment processor is authoritative and admission repopulates on demand.
"""

import logging
import threading

from ytscribe.models.schemas import EntitlementRecord

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Process-wide map of session ids to entitlements.

    Records are immutable; replacing one means inserting a new record under
    the same id. All operations hold a lock so readers never observe a
    partially written entry.

    Example:
        store = SessionStore()
        store.insert(record.session_id, record)
        entitlement = store.lookup(record.session_id)
    """

    def __init__(self):
        """Initialize empty store."""
        self._records: dict[str, EntitlementRecord] = {}
        self._lock = threading.Lock()

    def insert(self, session_id: str, record: EntitlementRecord) -> None:
        """Insert or replace the record for a session."""
        with self._lock:
            self._records[session_id] = record
        logger.debug(f"Stored entitlement {session_id[:12]}... for {record.video_id}")

    def lookup(self, session_id: str) -> EntitlementRecord | None:
        """Return the record for a session, or None."""
        with self._lock:
            return self._records.get(session_id)

    def remove(self, session_id: str) -> EntitlementRecord | None:
        """Remove and return the record for a session, if any."""
        with self._lock:
            return self._records.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._records
