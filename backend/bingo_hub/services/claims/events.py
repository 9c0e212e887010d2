"""Claim payloads as they cross the transport boundary.

Incoming claim requests are validated once into ``ClaimSubmission``; outgoing
notifications are the tagged ``ClaimSubmittedEvent`` / ``ClaimResultEvent``
variants. Wire names are camelCase, Python attributes snake_case.
"""
from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from bingo_hub.services.tickets import UnknownPattern, normalize_pattern

from .types import Claim, Ticket

CLAIM_SUBMITTED = 'new-claim'
CLAIM_RESULT = 'claim-result'


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_text(value):
    if value is None or isinstance(value, str):
        return value
    return str(value)


class TicketPayload(_WireModel):
    serial: str
    perm: int = 0
    position: int = Field(0, ge=0, le=5)
    layout_mask: int = Field(..., ge=0)
    numbers: List[int]

    @field_validator('serial', mode='before')
    @classmethod
    def coerce_serial(cls, value):
        return _as_text(value)

    def to_ticket(self) -> Ticket:
        return Ticket(
            serial=self.serial,
            perm=self.perm,
            position=self.position,
            layout_mask=self.layout_mask,
            numbers=tuple(self.numbers),
        )

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> 'TicketPayload':
        return cls(
            serial=ticket.serial,
            perm=ticket.perm,
            position=ticket.position,
            layout_mask=ticket.layout_mask,
            numbers=list(ticket.numbers),
        )


class ClaimSubmission(_WireModel):
    # Missing session ids are accepted here and rejected by the arbitrator
    session_id: Optional[str] = None
    player_id: str
    player_name: str = 'Unknown Player'
    game_number: int = Field(1, ge=1)
    # None means the session's active pattern
    win_pattern: Optional[str] = None
    game_type: str = 'mainstage'
    ticket: TicketPayload
    called_numbers: List[int] = Field(default_factory=list)
    last_called_number: Optional[int] = None

    @field_validator('session_id', 'player_id', mode='before')
    @classmethod
    def coerce_ids(cls, value):
        return _as_text(value)

    @field_validator('win_pattern')
    @classmethod
    def validate_win_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            return normalize_pattern(value).value
        except UnknownPattern as exc:
            raise ValueError(str(exc)) from None

    @field_validator('called_numbers')
    @classmethod
    def validate_called_numbers(cls, value: List[int]) -> List[int]:
        if len(set(value)) != len(value):
            raise ValueError('Called numbers must not repeat.')
        return value


class ClaimSubmittedEvent(_WireModel):
    event: Literal['new-claim'] = CLAIM_SUBMITTED
    session_id: str
    claim_id: str
    player_id: str
    player_name: str
    game_number: int
    win_pattern: str
    game_type: str
    ticket: TicketPayload
    called_numbers: List[int]
    last_called_number: Optional[int] = None
    to_go_count: int

    @classmethod
    def from_claim(cls, claim: Claim) -> 'ClaimSubmittedEvent':
        return cls(
            session_id=claim.session_id,
            claim_id=claim.id,
            player_id=claim.player_id,
            player_name=claim.player_name,
            game_number=claim.game_number,
            win_pattern=claim.win_pattern,
            game_type=claim.game_type,
            ticket=TicketPayload.from_ticket(claim.ticket),
            called_numbers=list(claim.called_numbers),
            last_called_number=claim.last_called_number,
            to_go_count=claim.to_go_count,
        )

    def payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude={'event'})


class ClaimResultEvent(_WireModel):
    event: Literal['claim-result'] = CLAIM_RESULT
    # Used for routing only; not part of the payload
    session_id: Optional[str] = None
    player_id: str
    result: Literal['valid', 'invalid']

    def payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude={'event', 'session_id'})


ClaimEvent = Annotated[Union[ClaimSubmittedEvent, ClaimResultEvent], Field(discriminator='event')]
