from __future__ import annotations

import datetime as dt
import itertools
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional, Set

from bingo_hub.services.tickets import UnknownPattern, decode_ticket, normalize_pattern, progress

from .events import ClaimResultEvent, ClaimSubmission, ClaimSubmittedEvent
from .ports import ClaimNotifier, SettlementStore
from .types import Claim, SettlementRecord

QueueCallback = Callable[[List[Claim]], None]


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class ClaimArbitrator:
    """Per-process claim queues, one per live session.

    Claims are held in memory until the caller settles them with
    :meth:`process` or discards them with :meth:`clear_claims_for_session`.
    Every queue mutation is followed by a fully re-sorted snapshot to the
    session's subscribers.

    Queue state is guarded by a re-entrant lock; settlement writes and
    outbound notifications happen outside it.
    """

    def __init__(
        self,
        notifier: Optional[ClaimNotifier] = None,
        store: Optional[SettlementStore] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self._notifier = notifier
        self._store = store
        self._logger = logger or logging.getLogger('bingo_hub.claims')
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._sequence = itertools.count(1)
        self._queues: Dict[str, List[Claim]] = {}
        self._subscribers: Dict[str, Set[QueueCallback]] = {}

    # ---- Session lifecycle ----

    def register_session(self, session_id: str) -> bool:
        if not session_id:
            self._logger.error("[claim-register] missing session id")
            return False
        with self._lock:
            if session_id not in self._queues:
                self._logger.info(f"[claim-register] session={session_id}")
                self._queues[session_id] = []
            self._subscribers.setdefault(session_id, set())
        return True

    def unregister_session(self, session_id: str) -> bool:
        if not session_id:
            self._logger.error("[claim-unregister] missing session id")
            return False
        with self._lock:
            dropped = self._queues.pop(session_id, None)
            self._subscribers.pop(session_id, None)
        if dropped:
            self._logger.info(f"[claim-unregister] session={session_id} discarded={len(dropped)}")
        return True

    def is_registered(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._queues

    # ---- Claims ----

    def submit(self, submission: ClaimSubmission) -> bool:
        session_id = submission.session_id
        if not session_id:
            self._logger.error("[claim-submit] missing session id; claim ignored")
            return False

        try:
            pattern = normalize_pattern(submission.win_pattern).value
        except UnknownPattern as exc:
            self._logger.error(f"[claim-submit] session={session_id} player={submission.player_id} {exc}")
            return False

        ticket = submission.ticket.to_ticket()
        called = tuple(submission.called_numbers)
        last_called = submission.last_called_number
        if last_called is None and called:
            last_called = called[-1]

        def _report(mismatch):
            self._logger.warning(
                f"[claim-submit] session={session_id} ticket={ticket.serial} {mismatch.describe()}"
            )

        grid = decode_ticket(ticket, on_mismatch=_report)
        result = progress(grid, called, pattern)
        has_last = last_called is not None and last_called in ticket.numbers

        with self._lock:
            queue = self._queues.get(session_id)
            if queue is None:
                self._logger.info(f"[claim-submit] creating queue for unregistered session={session_id}")
                queue = self._queues[session_id] = []
            key = (submission.player_id, ticket.serial, pattern, submission.game_number)
            if any(existing.dedup_key == key for existing in queue):
                self._logger.info(
                    f"[claim-duplicate] session={session_id} player={submission.player_id} "
                    f"ticket={ticket.serial} pattern={pattern} game={submission.game_number}"
                )
                return False

            claim = Claim(
                id=str(uuid.uuid4()),
                player_id=submission.player_id,
                player_name=submission.player_name,
                session_id=session_id,
                game_number=submission.game_number,
                win_pattern=pattern,
                game_type=submission.game_type,
                ticket=ticket,
                called_numbers=called,
                last_called_number=last_called,
                submitted_at=self._clock(),
                to_go_count=result.numbers_to_go,
                has_last_called_number=has_last,
                sequence=next(self._sequence),
            )
            queue.append(claim)
            self._logger.info(
                f"[claim-submit] session={session_id} claim={claim.id} player={claim.player_name} "
                f"to_go={claim.to_go_count} has_last={has_last} queued={len(queue)}"
            )
            self._notify_subscribers(session_id)

        self._emit(ClaimSubmittedEvent.from_claim(claim))
        return True

    def claims_for_session(self, session_id: str) -> List[Claim]:
        if not session_id:
            return []
        with self._lock:
            return self._sorted(session_id)

    def subscribe_to_claim_queue(self, session_id: str, callback: QueueCallback) -> Callable[[], None]:
        if not session_id:
            self._logger.error("[claim-subscribe] missing session id")
            return lambda: None

        with self._lock:
            if session_id not in self._queues:
                self._logger.warning(f"[claim-subscribe] session={session_id} is not registered")
                return lambda: None
            self._subscribers.setdefault(session_id, set()).add(callback)
            self._deliver(callback, self._sorted(session_id), session_id)

        def _unsubscribe() -> None:
            with self._lock:
                subscribers = self._subscribers.get(session_id)
                if subscribers:
                    subscribers.discard(callback)

        return _unsubscribe

    def process(self, claim_id: str, session_id: str, is_valid: bool,
                on_progress: Optional[Callable[[Claim], None]] = None) -> bool:
        """Settle a pending claim exactly once.

        The claim leaves the queue before the settlement write. If the write
        fails the claim is not put back; the failure is logged and ``False``
        returned so the caller can decide how to retry.

        ``on_progress`` is called with the claim after a valid claim has been
        settled, so the game can move on to its next pattern.
        """
        if not session_id:
            self._logger.error("[claim-process] missing session id")
            return False

        with self._lock:
            queue = self._queues.get(session_id) or []
            claim = next((c for c in queue if c.id == claim_id), None)
            if claim is None:
                self._logger.warning(f"[claim-process] claim={claim_id} not pending in session={session_id}")
                return False
            queue.remove(claim)
            self._notify_subscribers(session_id)

        verdict = 'valid' if is_valid else 'invalid'
        self._logger.info(f"[claim-process] session={session_id} claim={claim_id} verdict={verdict}")
        record = SettlementRecord.from_claim(claim, is_valid=is_valid, validated_at=self._clock())

        try:
            stored = bool(self._store.append_settlement(record)) if self._store is not None else True
        except Exception:
            self._logger.exception(f"[claim-settle-failed] session={session_id} claim={claim_id}")
            stored = False
        if not stored:
            self._logger.error(
                f"[claim-settle-failed] session={session_id} claim={claim_id} player={claim.player_id} "
                f"ticket={claim.ticket.serial} pattern={claim.win_pattern} verdict={verdict} not persisted"
            )
            return False

        self._emit(ClaimResultEvent(session_id=session_id, player_id=claim.player_id, result=verdict))
        if is_valid and on_progress is not None:
            try:
                on_progress(claim)
            except Exception:
                self._logger.exception(f"[claim-progress] session={session_id} claim={claim_id} progression failed")
        return True

    def clear_claims_for_session(self, session_id: str) -> None:
        if not session_id:
            return
        with self._lock:
            queue = self._queues.get(session_id)
            if queue is None:
                self._logger.info(f"[claim-clear] session={session_id} is not registered")
                return
            dropped = len(queue)
            queue.clear()
            self._logger.info(f"[claim-clear] session={session_id} discarded={dropped}")
            self._notify_subscribers(session_id)

    # ---- Internals ----

    def _sorted(self, session_id: str) -> List[Claim]:
        return sorted(self._queues.get(session_id) or [], key=Claim.sort_key)

    def _notify_subscribers(self, session_id: str) -> None:
        subscribers = self._subscribers.get(session_id)
        if not subscribers:
            return
        snapshot = self._sorted(session_id)
        for callback in list(subscribers):
            self._deliver(callback, list(snapshot), session_id)

    def _deliver(self, callback: QueueCallback, snapshot: List[Claim], session_id: str) -> None:
        try:
            callback(snapshot)
        except Exception:
            self._logger.exception(f"[claim-subscriber] callback failed for session={session_id}")

    def _emit(self, event) -> None:
        if self._notifier is None:
            return
        try:
            if not self._notifier.notify(event):
                self._logger.warning(f"[claim-notify] {event.event} for player={event.player_id} was not delivered")
        except Exception:
            self._logger.exception(f"[claim-notify] {event.event} for player={event.player_id} failed")
