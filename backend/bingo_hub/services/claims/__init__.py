"""Claim arbitration: queueing, ordering and settlement of bingo claims.

Transport and persistence are reached only through the ports in
``ports.py``; concrete adapters live in ``bingo_hub.realtime``.
"""
from .arbitrator import ClaimArbitrator  # noqa: F401
from .events import (  # noqa: F401
    CLAIM_RESULT,
    CLAIM_SUBMITTED,
    ClaimEvent,
    ClaimResultEvent,
    ClaimSubmission,
    ClaimSubmittedEvent,
    TicketPayload,
)
from .types import Claim, ClaimState, SettlementRecord, Ticket  # noqa: F401
