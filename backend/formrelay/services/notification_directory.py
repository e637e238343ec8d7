"""
FormRelay Backend — Notification Directory
============================================

What:  In-memory map from account id to the Socket.IO session ids currently
       registered for that account.
How:   Two dicts kept in step: account → set of sids, and sid → account for
       O(1) removal on disconnect.
Who:   Mutated by the Socket.IO event handlers in formrelay/realtime.py;
       read by NotificationService when delivering live events.
When:  Lives exactly as long as the server process. Nothing is persisted.

Concurrency:
    All mutations come from Socket.IO handlers running on the single asyncio
    event loop, and none of the methods await, so they never interleave.
    A multi-threaded server would need a lock around both dicts.

Semantics:
    - Non-authoritative: the notifications table is the durable record.
    - lookup() of an unknown account returns an empty list, never raises.
"""

import logging
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class NotificationDirectory:
    """Process-wide registry of live connections per account."""

    def __init__(self) -> None:
        self._by_account: Dict[str, Set[str]] = {}
        self._by_session: Dict[str, str] = {}

    def register(self, account_id: str, sid: str) -> None:
        """
        Attach a session to an account.

        A session that re-registers under a different account is moved,
        so one sid never appears under two accounts.
        """
        account_id = str(account_id)
        previous = self._by_session.get(sid)
        if previous is not None and previous != account_id:
            self._detach(previous, sid)

        self._by_account.setdefault(account_id, set()).add(sid)
        self._by_session[sid] = account_id
        logger.debug("Session %s registered for account %s", sid, account_id)

    def unregister(self, sid: str) -> Optional[str]:
        """
        Drop a session. Returns the account it belonged to, or None if the
        session never registered.
        """
        account_id = self._by_session.pop(sid, None)
        if account_id is not None:
            self._detach(account_id, sid)
            logger.debug("Session %s unregistered from account %s", sid, account_id)
        return account_id

    def lookup(self, account_id: str) -> List[str]:
        return sorted(self._by_account.get(str(account_id), ()))

    def is_online(self, account_id: str) -> bool:
        return str(account_id) in self._by_account

    @property
    def connection_count(self) -> int:
        return len(self._by_session)

    def clear(self) -> None:
        self._by_account.clear()
        self._by_session.clear()

    def _detach(self, account_id: str, sid: str) -> None:
        sessions = self._by_account.get(account_id)
        if sessions is None:
            return
        sessions.discard(sid)
        if not sessions:
            del self._by_account[account_id]
