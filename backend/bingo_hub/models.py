import datetime as dt
import json

from bingo_hub import db


def _utcnow():
    return dt.datetime.now(dt.timezone.utc)


class ClaimSettlement(db.Model):
    """Write-once outcome of a bingo claim."""
    __tablename__ = 'claim_settlement'
    id = db.Column(db.Integer, primary_key=True)
    claim_id = db.Column(db.String(36), unique=True, nullable=False, index=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    player_id = db.Column(db.String(64), nullable=False, index=True)
    player_name = db.Column(db.String(128), nullable=False)
    game_number = db.Column(db.Integer, nullable=False, default=1)
    game_type = db.Column(db.String(32), nullable=False, default='mainstage')
    win_pattern = db.Column(db.String(32), nullable=False)
    ticket_serial = db.Column(db.String(64), nullable=False)
    ticket_perm = db.Column(db.Integer, nullable=True)
    ticket_position = db.Column(db.Integer, nullable=True)
    ticket_layout_mask = db.Column(db.Integer, nullable=False)
    ticket_numbers = db.Column(db.Text, nullable=False)  # JSON-encoded list
    called_numbers = db.Column(db.Text, nullable=False)  # JSON-encoded list, call order
    last_called_number = db.Column(db.Integer, nullable=True)
    total_calls = db.Column(db.Integer, nullable=False, default=0)
    is_valid = db.Column(db.Boolean, nullable=False)
    claimed_at = db.Column(db.DateTime(timezone=True), nullable=False)
    validated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @classmethod
    def from_record(cls, record):
        return cls(
            claim_id=record.claim_id,
            session_id=record.session_id,
            player_id=record.player_id,
            player_name=record.player_name,
            game_number=record.game_number,
            game_type=record.game_type,
            win_pattern=record.win_pattern,
            ticket_serial=record.ticket.serial,
            ticket_perm=record.ticket.perm,
            ticket_position=record.ticket.position,
            ticket_layout_mask=record.ticket.layout_mask,
            ticket_numbers=json.dumps(list(record.ticket.numbers)),
            called_numbers=json.dumps(list(record.called_numbers)),
            last_called_number=record.last_called_number,
            total_calls=len(record.called_numbers),
            is_valid=record.is_valid,
            claimed_at=record.claimed_at,
            validated_at=record.validated_at,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'claim_id': self.claim_id,
            'session_id': self.session_id,
            'player_id': self.player_id,
            'player_name': self.player_name,
            'game_number': self.game_number,
            'game_type': self.game_type,
            'win_pattern': self.win_pattern,
            'ticket': {
                'serial': self.ticket_serial,
                'perm': self.ticket_perm,
                'position': self.ticket_position,
                'layout_mask': self.ticket_layout_mask,
                'numbers': json.loads(self.ticket_numbers) if self.ticket_numbers else [],
            },
            'called_numbers': json.loads(self.called_numbers) if self.called_numbers else [],
            'last_called_number': self.last_called_number,
            'total_calls': self.total_calls,
            'result': 'valid' if self.is_valid else 'invalid',
            'claimed_at': self.claimed_at.isoformat() if self.claimed_at else None,
            'validated_at': self.validated_at.isoformat() if self.validated_at else None,
        }
