"""create users, carver matrix and carver item tables

Revision ID: 001_create_carver_tables
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_create_carver_tables'
down_revision = None
branch_labels = None
depends_on = None

SCORE_COLUMNS = (
    'criticality',
    'accessibility',
    'recoverability',
    'vulnerability',
    'effect',
    'recognizability',
)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('keycloak_id', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=True),
        sa.Column('last_name', sa.String(50), nullable=True),
        sa.Column('full_name', sa.String(50), nullable=True),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('keycloak_id', name='uq_users_keycloak_id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'carver_matrices',
        sa.Column('matrix_id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('hosts', postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column('participants', postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column('c_multi', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('a_multi', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('r_multi', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('v_multi', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('e_multi', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('r2_multi', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('random_assignment', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('role_based', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('five_point_scoring', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_carver_matrices_matrix_id', 'carver_matrices', ['matrix_id'])
    op.create_index('ix_carver_matrices_user_id', 'carver_matrices', ['user_id'])
    # Membership lookups use `= ANY(hosts)` / `= ANY(participants)`
    op.create_index('ix_carver_matrices_hosts', 'carver_matrices', ['hosts'], postgresql_using='gin')
    op.create_index('ix_carver_matrices_participants', 'carver_matrices', ['participants'], postgresql_using='gin')

    op.create_table(
        'carver_items',
        sa.Column('item_id', sa.Integer(), primary_key=True),
        sa.Column(
            'matrix_id',
            sa.Integer(),
            sa.ForeignKey('carver_matrices.matrix_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('item_name', sa.String(255), nullable=False),
        *[
            sa.Column(name, postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb"))
            for name in SCORE_COLUMNS
        ],
        sa.Column('target_users', postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_carver_items_item_id', 'carver_items', ['item_id'])
    op.create_index('ix_carver_items_matrix_id', 'carver_items', ['matrix_id'])
    op.create_index('ix_carver_items_matrix_item', 'carver_items', ['matrix_id', 'item_id'])


def downgrade() -> None:
    op.drop_index('ix_carver_items_matrix_item', table_name='carver_items')
    op.drop_index('ix_carver_items_matrix_id', table_name='carver_items')
    op.drop_index('ix_carver_items_item_id', table_name='carver_items')
    op.drop_table('carver_items')

    op.drop_index('ix_carver_matrices_participants', table_name='carver_matrices')
    op.drop_index('ix_carver_matrices_hosts', table_name='carver_matrices')
    op.drop_index('ix_carver_matrices_user_id', table_name='carver_matrices')
    op.drop_index('ix_carver_matrices_matrix_id', table_name='carver_matrices')
    op.drop_table('carver_matrices')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
