from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ClaimState(str, Enum):
    QUEUED = 'queued'
    VALIDATED = 'validated'
    REJECTED = 'rejected'


@dataclass(frozen=True)
class Ticket:
    serial: str
    perm: int
    position: int
    layout_mask: int
    numbers: Tuple[int, ...]

    def to_dict(self) -> dict:
        return {
            'serial': self.serial,
            'perm': self.perm,
            'position': self.position,
            'layout_mask': self.layout_mask,
            'numbers': list(self.numbers),
        }


@dataclass(frozen=True)
class Claim:
    id: str
    player_id: str
    player_name: str
    session_id: str
    game_number: int
    win_pattern: str
    game_type: str
    ticket: Ticket
    called_numbers: Tuple[int, ...]
    last_called_number: Optional[int]
    submitted_at: dt.datetime
    to_go_count: int
    has_last_called_number: bool
    sequence: int = 0

    @property
    def dedup_key(self) -> Tuple[str, str, str, int]:
        return (self.player_id, self.ticket.serial, self.win_pattern, self.game_number)

    def sort_key(self):
        return (
            self.to_go_count != 0,
            not self.has_last_called_number,
            self.to_go_count,
            self.submitted_at,
            self.sequence,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'player_id': self.player_id,
            'player_name': self.player_name,
            'session_id': self.session_id,
            'game_number': self.game_number,
            'win_pattern': self.win_pattern,
            'game_type': self.game_type,
            'ticket': self.ticket.to_dict(),
            'called_numbers': list(self.called_numbers),
            'last_called_number': self.last_called_number,
            'submitted_at': self.submitted_at.isoformat(),
            'to_go_count': self.to_go_count,
            'has_last_called_number': self.has_last_called_number,
        }


@dataclass(frozen=True)
class SettlementRecord:
    claim_id: str
    session_id: str
    player_id: str
    player_name: str
    game_number: int
    game_type: str
    win_pattern: str
    ticket: Ticket
    called_numbers: Tuple[int, ...]
    last_called_number: Optional[int]
    is_valid: bool
    claimed_at: dt.datetime
    validated_at: dt.datetime

    @property
    def state(self) -> ClaimState:
        return ClaimState.VALIDATED if self.is_valid else ClaimState.REJECTED

    @classmethod
    def from_claim(cls, claim: Claim, is_valid: bool, validated_at: dt.datetime) -> 'SettlementRecord':
        return cls(
            claim_id=claim.id,
            session_id=claim.session_id,
            player_id=claim.player_id,
            player_name=claim.player_name,
            game_number=claim.game_number,
            game_type=claim.game_type,
            win_pattern=claim.win_pattern,
            ticket=claim.ticket,
            called_numbers=claim.called_numbers,
            last_called_number=claim.last_called_number,
            is_valid=is_valid,
            claimed_at=claim.submitted_at,
            validated_at=validated_at,
        )
