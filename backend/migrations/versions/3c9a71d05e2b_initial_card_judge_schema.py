"""initial card judge schema

Revision ID: 3c9a71d05e2b
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9a71d05e2b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=True),
        sa.Column('avatar_url', sa.String(length=512), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'card_set',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    for table in ('prompt_card', 'response_card'):
        columns = [
            sa.Column('cid', sa.String(length=64), nullable=False),
            sa.Column('text', sa.Text(), nullable=False),
        ]
        if table == 'prompt_card':
            columns.append(sa.Column('special', sa.String(length=32), nullable=True))
        columns += [
            sa.Column('set_id', sa.String(length=64), nullable=False),
            sa.Column('source', sa.String(length=128), nullable=True),
            sa.ForeignKeyConstraint(['set_id'], ['card_set.id']),
            sa.PrimaryKeyConstraint('cid'),
        ]
        op.create_table(table, *columns)
        op.create_index(f'ix_{table}_set_id', table, ['set_id'], unique=False)

    # game.current_turn_id points at turn, which points back at game: FK added below
    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('gid', sa.String(length=5), nullable=True),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('state', sa.String(length=32), nullable=False),
        sa.Column('round', sa.Integer(), nullable=False),
        sa.Column('prizes_to_win', sa.Integer(), nullable=False),
        sa.Column('player_limit', sa.Integer(), nullable=False),
        sa.Column('pick2_enabled', sa.Boolean(), nullable=False),
        sa.Column('draw2_pick3_enabled', sa.Boolean(), nullable=False),
        sa.Column('judge_rotation', sa.JSON(), nullable=False),
        sa.Column('card_sets', sa.JSON(), nullable=False),
        sa.Column('winner_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_turn_id', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_game_gid', 'game', ['gid'], unique=True)

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('avatar_url', sa.String(length=512), nullable=True),
        sa.Column('is_rando_cardrissian', sa.Boolean(), nullable=False),
        sa.Column('is_inactive', sa.Boolean(), nullable=False),
        sa.Column('is_kicked', sa.Boolean(), nullable=False),
        sa.Column('hand', sa.JSON(), nullable=False),
        sa.Column('prizes', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'user_id', name='uq_player_game_user'),
    )
    op.create_index('ix_player_game_id', 'player', ['game_id'], unique=False)
    op.create_index('ix_player_user_id', 'player', ['user_id'], unique=False)

    op.create_table(
        'turn',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('judge_id', sa.String(length=64), nullable=False),
        sa.Column('prompt_card_id', sa.String(length=64), nullable=False),
        sa.Column('responses', sa.JSON(), nullable=False),
        sa.Column('downvotes', sa.JSON(), nullable=False),
        sa.Column('winner', sa.JSON(), nullable=True),
        sa.Column('winner_id', sa.String(length=64), nullable=True),
        sa.Column('notified_judge_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.ForeignKeyConstraint(['prompt_card_id'], ['prompt_card.cid']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_turn_game_id', 'turn', ['game_id'], unique=False)

    with op.batch_alter_table('game') as batch_op:
        batch_op.create_foreign_key('fk_game_current_turn_id', 'turn', ['current_turn_id'], ['id'])

    op.create_table(
        'card_pool',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('cards', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'kind', name='uq_card_pool_game_kind'),
    )
    op.create_index('ix_card_pool_game_id', 'card_pool', ['game_id'], unique=False)

    op.create_table(
        'vetoed_prompt',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('prompt_card_id', sa.String(length=64), nullable=False),
        sa.Column('vetoed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.ForeignKeyConstraint(['prompt_card_id'], ['prompt_card.cid']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vetoed_prompt_game_id', 'vetoed_prompt', ['game_id'], unique=False)


def downgrade():
    op.drop_index('ix_vetoed_prompt_game_id', table_name='vetoed_prompt')
    op.drop_table('vetoed_prompt')
    op.drop_index('ix_card_pool_game_id', table_name='card_pool')
    op.drop_table('card_pool')
    with op.batch_alter_table('game') as batch_op:
        batch_op.drop_constraint('fk_game_current_turn_id', type_='foreignkey')
    op.drop_index('ix_turn_game_id', table_name='turn')
    op.drop_table('turn')
    op.drop_index('ix_player_user_id', table_name='player')
    op.drop_index('ix_player_game_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_game_gid', table_name='game')
    op.drop_table('game')
    for table in ('response_card', 'prompt_card'):
        op.drop_index(f'ix_{table}_set_id', table_name=table)
        op.drop_table(table)
    op.drop_table('card_set')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
