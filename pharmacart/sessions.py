"""
Order sessions ("tabs").

Each session owns an independent CartEngine together with its customer
and search context. The manager keeps the ordered list (bounded by
MAX_SESSIONS) and the active session, and is the only place where
sessions and their carts are created or discarded.
"""

import logging
import uuid as uuid_lib
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from django.utils import timezone

from pharmacart.cart import CartEngine
from pharmacart.conf import PharmacartSettings, get_pharmacart_settings
from pharmacart.protocols import CatalogBackend

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class OrderSession:
    """One open order."""

    id: str
    name: str
    cart: CartEngine
    customer_name: str = ""
    customer_code: str = ""
    search_query: str = ""
    is_pinned: bool = False
    created_at: datetime = field(default_factory=timezone.now)

    @property
    def discount(self) -> Decimal:
        """Order-level discount percent."""
        return self.cart.order_discount

    def set_customer(self, name: str = "", code: str = "") -> None:
        self.customer_name = name
        self.customer_code = code


class SessionManager:
    """
    Bounded, ordered collection of order sessions.

    There is always at least one session: closing the last one opens a
    fresh, empty replacement.
    """

    def __init__(
        self,
        catalog: CatalogBackend,
        pharmacart_settings: PharmacartSettings | None = None,
    ) -> None:
        self.catalog = catalog
        self.settings = pharmacart_settings or get_pharmacart_settings()
        self._sessions: list[OrderSession] = []
        self._active_id: str | None = None
        self._active_id = self._open_session().id

    # ======================================================================
    # READ API
    # ======================================================================

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[OrderSession]:
        return iter(list(self._sessions))

    @property
    def max_sessions(self) -> int:
        return self.settings.MAX_SESSIONS

    @property
    def sessions(self) -> list[OrderSession]:
        return list(self._sessions)

    @property
    def can_create(self) -> bool:
        return len(self._sessions) < self.max_sessions

    @property
    def active_id(self) -> str:
        return self.active.id

    @property
    def active(self) -> OrderSession:
        session = self.get(self._active_id) if self._active_id else None
        return session or self._sessions[0]

    def get(self, session_id: str) -> OrderSession | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    # ======================================================================
    # LIFECYCLE
    # ======================================================================

    def create(self, name: str | None = None) -> OrderSession | None:
        """Open a new session and make it active. None when at capacity."""
        if not self.can_create:
            logger.debug("Session limit (%d) reached", self.max_sessions)
            return None
        session = self._open_session(name)
        self._active_id = session.id
        return session

    def close(self, session_id: str) -> bool:
        """
        Discard a session and its cart.

        If it was active, the previous session becomes active (the next
        one when the first session is closed).
        """
        index = self._index(session_id)
        if index is None:
            return False

        session = self._sessions[index]
        remaining = self._sessions[:index] + self._sessions[index + 1:]
        self._sessions = remaining

        if not remaining:
            self._active_id = self._open_session().id
        elif self._active_id == session_id:
            self._active_id = remaining[max(0, index - 1)].id

        logger.debug("Closed session %s (%s)", session.id, session.name)
        self._send_closed(session)
        return True

    def close_unpinned(self) -> int:
        """Close every session that is not pinned. Returns how many were closed."""
        closed = [session for session in self._sessions if not session.is_pinned]
        if not closed:
            return 0

        self._sessions = [session for session in self._sessions if session.is_pinned]
        if not self._sessions:
            self._active_id = self._open_session().id
        elif self.get(self._active_id) is None:
            self._active_id = self._sessions[0].id

        for session in closed:
            self._send_closed(session)
        logger.debug("Closed %d unpinned session(s)", len(closed))
        return len(closed)

    def switch(self, session_id: str) -> bool:
        if self.get(session_id) is None:
            return False
        self._active_id = session_id
        return True

    def rename(self, session_id: str, name: str) -> bool:
        session = self.get(session_id)
        if session is None:
            return False
        session.name = name
        return True

    def set_pinned(self, session_id: str, pinned: bool) -> bool:
        """Pin or unpin a session. Pinned sessions are kept first."""
        session = self.get(session_id)
        if session is None:
            return False
        session.is_pinned = pinned
        pinned_sessions = [s for s in self._sessions if s.is_pinned]
        unpinned_sessions = [s for s in self._sessions if not s.is_pinned]
        self._sessions = pinned_sessions + unpinned_sessions
        return True

    def toggle_pin(self, session_id: str) -> bool:
        session = self.get(session_id)
        if session is None:
            return False
        return self.set_pinned(session_id, not session.is_pinned)

    def reorder(self, session_ids: list[str]) -> bool:
        """Reorder sessions. session_ids must be a permutation of the current ids."""
        by_id = {session.id: session for session in self._sessions}
        if len(session_ids) != len(by_id) or set(session_ids) != set(by_id):
            return False
        self._sessions = [by_id[session_id] for session_id in session_ids]
        return True

    # ======================================================================
    # PERSISTENCE
    # ======================================================================

    def dump(self) -> dict:
        """Plain, JSON-friendly representation of every session."""
        return {
            "active_id": self.active_id,
            "sessions": [
                {
                    "id": session.id,
                    "name": session.name,
                    "customer_name": session.customer_name,
                    "customer_code": session.customer_code,
                    "search_query": session.search_query,
                    "is_pinned": session.is_pinned,
                    "created_at": session.created_at.isoformat(),
                    "cart": session.cart.dump(),
                }
                for session in self._sessions
            ],
        }

    @classmethod
    def load(
        cls,
        data: dict,
        catalog: CatalogBackend,
        pharmacart_settings: PharmacartSettings | None = None,
    ) -> "SessionManager":
        """Rebuild a manager from dump() output (extra sessions beyond MAX_SESSIONS are dropped)."""
        manager = cls(catalog, pharmacart_settings)
        sessions = []
        for raw in data.get("sessions", [])[: manager.max_sessions]:
            created_at = raw.get("created_at")
            sessions.append(
                OrderSession(
                    id=raw["id"],
                    name=raw.get("name", ""),
                    cart=CartEngine.load(raw.get("cart", {}), catalog, manager.settings),
                    customer_name=raw.get("customer_name", ""),
                    customer_code=raw.get("customer_code", ""),
                    search_query=raw.get("search_query", ""),
                    is_pinned=bool(raw.get("is_pinned", False)),
                    created_at=datetime.fromisoformat(created_at) if created_at else timezone.now(),
                )
            )
        if sessions:
            manager._sessions = sessions
            active_id = data.get("active_id")
            manager._active_id = active_id if manager.get(active_id) else sessions[0].id
        return manager

    # ======================================================================
    # INTERNALS
    # ======================================================================

    def _open_session(self, name: str | None = None) -> OrderSession:
        session = OrderSession(
            id=uuid_lib.uuid4().hex,
            name=name or f"Tab {len(self._sessions) + 1}",
            cart=CartEngine(self.catalog, self.settings),
        )
        self._sessions = self._sessions + [session]
        logger.debug("Opened session %s (%s)", session.id, session.name)
        return session

    def _index(self, session_id: str) -> int | None:
        for index, session in enumerate(self._sessions):
            if session.id == session_id:
                return index
        return None

    def _send_closed(self, session: OrderSession) -> None:
        from pharmacart.signals import session_closed

        session_closed.send(sender=self.__class__, session=session)
