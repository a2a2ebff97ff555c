"""add hosting_deactivations and hosting_accounts.sql_cluster

Revision ID: 3f8a6c1e2b90
Revises: 7c2e91d0a4b5
Create Date: 2026-10-18 15:40:02.118734

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f8a6c1e2b90'
down_revision = '7c2e91d0a4b5'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('hosting_deactivations',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.String(length=36), nullable=False),
    sa.Column('account_id', sa.String(length=36), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['account_id'], ['hosting_accounts.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('hosting_deactivations', schema=None) as batch_op:
        batch_op.create_index('ix_hosting_deactivations_user_created', ['user_id', 'created_at'], unique=False)

    with op.batch_alter_table('hosting_accounts', schema=None) as batch_op:
        batch_op.add_column(sa.Column('sql_cluster', sa.String(length=32), nullable=True))

    # Carry over the last known deactivation of each account
    op.execute(
        "INSERT INTO hosting_deactivations (user_id, account_id, created_at) "
        "SELECT user_id, id, deactivated_at FROM hosting_accounts "
        "WHERE deactivated_at IS NOT NULL"
    )


def downgrade():
    with op.batch_alter_table('hosting_accounts', schema=None) as batch_op:
        batch_op.drop_column('sql_cluster')

    with op.batch_alter_table('hosting_deactivations', schema=None) as batch_op:
        batch_op.drop_index('ix_hosting_deactivations_user_created')

    op.drop_table('hosting_deactivations')
