"""create users table with token_version and pending OTP columns

Revision ID: 3f9c2a7d1e40
Revises:
Create Date: 2026-10-18

token_version starts at 1 for every account; refresh tokens embed it and stop
working once it is incremented. pending_otp_* hold the single outstanding
login challenge (hash only, never the raw code).
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '3f9c2a7d1e40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column(
            'role',
            sa.Enum('user', 'admin', name='user_role'),
            nullable=False,
            server_default='user',
        ),
        sa.Column('profile_picture_url', sa.String(length=500), nullable=False),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('pending_otp_hash', sa.String(), nullable=True),
        sa.Column('pending_otp_expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
    # Postgres keeps the enum type around after the table is gone
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
