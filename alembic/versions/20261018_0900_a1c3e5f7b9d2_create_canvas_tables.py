"""create_canvas_tables

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c3e5f7b9d2'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'canvases',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_canvases_user_id', 'canvases', ['user_id'])

    op.create_table(
        'blocks',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('canvas_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('position_x', sa.Float(), nullable=False),
        sa.Column('position_y', sa.Float(), nullable=False),
        sa.Column('width', sa.Float(), nullable=False),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['canvas_id'], ['canvases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_blocks_canvas_id', 'blocks', ['canvas_id'])
    op.create_index('ix_blocks_user_id', 'blocks', ['user_id'])

    op.create_table(
        'connections',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('canvas_id', sa.String(36), nullable=False),
        sa.Column('source_block_id', sa.String(36), nullable=False),
        sa.Column('target_block_id', sa.String(36), nullable=False),
        sa.Column('source_handle', sa.String(100), nullable=True),
        sa.Column('target_handle', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['canvas_id'], ['canvases.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_block_id'], ['blocks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['target_block_id'], ['blocks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_connections_canvas_id', 'connections', ['canvas_id'])


def downgrade() -> None:
    op.drop_index('ix_connections_canvas_id', 'connections')
    op.drop_table('connections')
    op.drop_index('ix_blocks_user_id', 'blocks')
    op.drop_index('ix_blocks_canvas_id', 'blocks')
    op.drop_table('blocks')
    op.drop_index('ix_canvases_user_id', 'canvases')
    op.drop_table('canvases')
