"""create claim_settlement

Revision ID: 3c7a9e1d2b40
Revises:
Create Date: 2025-05-03 12:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7a9e1d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'claim_settlement' in set(insp.get_table_names()):
        return

    op.create_table(
        'claim_settlement',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('claim_id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=False),
        sa.Column('player_id', sa.String(length=64), nullable=False),
        sa.Column('player_name', sa.String(length=128), nullable=False),
        sa.Column('game_number', sa.Integer(), nullable=False),
        sa.Column('game_type', sa.String(length=32), nullable=False),
        sa.Column('win_pattern', sa.String(length=32), nullable=False),
        sa.Column('ticket_serial', sa.String(length=64), nullable=False),
        sa.Column('ticket_perm', sa.Integer(), nullable=True),
        sa.Column('ticket_position', sa.Integer(), nullable=True),
        sa.Column('ticket_layout_mask', sa.Integer(), nullable=False),
        sa.Column('ticket_numbers', sa.Text(), nullable=False),
        sa.Column('called_numbers', sa.Text(), nullable=False),
        sa.Column('last_called_number', sa.Integer(), nullable=True),
        sa.Column('total_calls', sa.Integer(), nullable=False),
        sa.Column('is_valid', sa.Boolean(), nullable=False),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_claim_settlement_claim_id', 'claim_settlement', ['claim_id'], unique=True)
    op.create_index('ix_claim_settlement_session_id', 'claim_settlement', ['session_id'])
    op.create_index('ix_claim_settlement_player_id', 'claim_settlement', ['player_id'])


def downgrade():
    op.drop_index('ix_claim_settlement_player_id', table_name='claim_settlement')
    op.drop_index('ix_claim_settlement_session_id', table_name='claim_settlement')
    op.drop_index('ix_claim_settlement_claim_id', table_name='claim_settlement')
    op.drop_table('claim_settlement')
