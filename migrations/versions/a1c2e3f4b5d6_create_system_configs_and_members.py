"""Create system_configs and members tables.

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c2e3f4b5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the config override table and the loyalty members table."""
    op.create_table(
        'system_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_system_configs_key', 'system_configs', ['key'], unique=True)

    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('member_level', sa.String(20), nullable=False, server_default='normal'),
        sa.Column('total_spent', sa.Numeric(12, 2), nullable=False, server_default=sa.text('0')),
        sa.Column('points_balance', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone', name='uq_members_phone'),
    )
    op.create_index('ix_members_member_level', 'members', ['member_level'])


def downgrade():
    """Drop members and system_configs tables."""
    op.drop_index('ix_members_member_level', table_name='members')
    op.drop_table('members')
    op.drop_index('ix_system_configs_key', table_name='system_configs')
    op.drop_table('system_configs')
