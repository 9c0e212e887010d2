"""Socket.IO and database adapters for the claim arbitrator's ports."""
import logging
import threading
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from bingo_hub import db
from bingo_hub.services.claims import CLAIM_SUBMITTED, ClaimArbitrator

NAMESPACE = '/ws'


def session_room(session_id: str) -> str:
    return f"session:{session_id}"


def caller_room(session_id: str) -> str:
    return f"caller:{session_id}"


def player_room(player_id: str) -> str:
    return f"player:{player_id}"


class SocketIONotifier:
    """Delivers claim events to the Socket.IO rooms that care about them.

    Each event fans out to every target room; an emit that raises is retried
    up to ``attempts`` times before that room is given up on.
    """

    def __init__(self, socketio, attempts: int = 2, namespace: str = NAMESPACE,
                 logger: Optional[logging.Logger] = None) -> None:
        self._socketio = socketio
        self._attempts = max(1, attempts)
        self._namespace = namespace
        self._logger = logger or logging.getLogger('bingo_hub.realtime')

    def rooms_for(self, event) -> List[str]:
        if event.event == CLAIM_SUBMITTED:
            return [caller_room(event.session_id), session_room(event.session_id)]
        return [player_room(event.player_id)]

    def notify(self, event) -> bool:
        payload = event.payload()
        delivered = True
        for room in self.rooms_for(event):
            if not self._emit(event.event, payload, room):
                delivered = False
        return delivered

    def _emit(self, name: str, payload: dict, room: str) -> bool:
        for attempt in range(1, self._attempts + 1):
            try:
                self._socketio.emit(name, payload, to=room, namespace=self._namespace)
                return True
            except Exception as exc:
                self._logger.warning(f"[notify-retry] event={name} room={room} attempt={attempt} error={exc}")
        self._logger.error(f"[notify-failed] event={name} room={room} after {self._attempts} attempts")
        return False


class SqlSettlementStore:
    """Appends one ``ClaimSettlement`` row per settled claim."""

    def append_settlement(self, record) -> bool:
        from bingo_hub.models import ClaimSettlement
        try:
            db.session.add(ClaimSettlement.from_record(record))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logging.getLogger('bingo_hub.realtime').exception(
                f"[settlement-write] claim={record.claim_id} session={record.session_id} failed")
            return False
        return True


class ClaimQueueWatcher:
    """Pushes every claim queue snapshot of a session to its caller room."""

    def __init__(self, socketio, arbitrator: ClaimArbitrator, namespace: str = NAMESPACE) -> None:
        self._socketio = socketio
        self._arbitrator = arbitrator
        self._namespace = namespace
        self._lock = threading.Lock()
        self._unsubscribers: Dict[str, Callable[[], None]] = {}

    def watch(self, session_id: str) -> bool:
        """Register the session with the arbitrator and start pushing snapshots."""
        if not self._arbitrator.register_session(session_id):
            return False
        with self._lock:
            if session_id in self._unsubscribers:
                return True

            def _push(claims):
                self._socketio.emit('claim_queue', {
                    'session_id': session_id,
                    'claims': [c.to_dict() for c in claims],
                }, to=caller_room(session_id), namespace=self._namespace)

            self._unsubscribers[session_id] = self._arbitrator.subscribe_to_claim_queue(session_id, _push)
        return True

    def unwatch(self, session_id: str) -> None:
        with self._lock:
            unsubscribe = self._unsubscribers.pop(session_id, None)
        if unsubscribe:
            unsubscribe()
        self._arbitrator.unregister_session(session_id)

    def is_watching(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._unsubscribers
