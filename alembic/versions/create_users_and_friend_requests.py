"""Create users, user_friends and friend_requests tables

Revision ID: create_users_and_friend_requests
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_users_and_friend_requests'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_pic', sa.String(), nullable=True),
        sa.Column('native_language', sa.String(), nullable=True),
        sa.Column('learning_language', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('is_onboarded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reset_password_token', sa.String(), nullable=True),
        sa.Column('reset_password_expires', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_reset_password_token', 'users', ['reset_password_token'])

    op.create_table('user_friends',
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('friend_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['friend_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'friend_id')
    )

    op.create_table('friend_requests',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('sender_id', sa.String(), nullable=False),
        sa.Column('recipient_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('pair_low', sa.String(), nullable=False),
        sa.Column('pair_high', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pair_low', 'pair_high', name='uq_friend_request_pair')
    )
    op.create_index('ix_friend_requests_sender_id', 'friend_requests', ['sender_id'])
    op.create_index('ix_friend_requests_recipient_id', 'friend_requests', ['recipient_id'])


def downgrade():
    op.drop_index('ix_friend_requests_recipient_id', table_name='friend_requests')
    op.drop_index('ix_friend_requests_sender_id', table_name='friend_requests')
    op.drop_table('friend_requests')
    op.drop_table('user_friends')
    op.drop_index('ix_users_reset_password_token', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
