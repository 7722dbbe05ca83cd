"""create_portal_tables

Revision ID: 3f9a1c2b7d40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

app_role = sa.Enum(
    'super_admin', 'admin', 'district_admin', 'pastor', 'leader', 'worker', 'member',
    name='app_role_enum',
)
member_status = sa.Enum(
    'active', 'inactive', 'suspended', 'transferred', name='member_status_enum'
)
assignment_kind = sa.Enum('ministry', 'department', 'group', name='assignment_kind_enum')
transfer_status = sa.Enum('pending', 'approved', 'rejected', name='transfer_status_enum')
audit_action = sa.Enum(
    'import_members', 'start_stream', 'end_stream', 'archive_stream',
    'updated_user_role', 'created_user', 'created_branch', 'updated_branch',
    'submit_transfer', 'approve_transfer', 'reject_transfer',
    name='audit_action_enum',
)
stream_privacy = sa.Enum('public', 'members_only', 'private', name='stream_privacy_enum')
stream_status = sa.Enum('scheduled', 'live', 'ended', 'archived', name='stream_status_enum')


def upgrade() -> None:
    """Upgrade schema - Create branch, profile, transfer, audit and stream tables."""

    op.create_table(
        'church_branches',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('district_id', sa.String(), server_default='default', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_church_branches_name', 'church_branches', ['name'])

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('branch_id', UUID(as_uuid=True), nullable=True),
        sa.Column('primary_role', app_role, server_default='member', nullable=False),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['branch_id'], ['church_branches.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'])
    op.create_index('ix_profiles_branch_id', 'profiles', ['branch_id'])

    op.create_table(
        'members',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('profile_id', sa.String(), nullable=True),
        sa.Column('branch_id', UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('status', member_status, server_default='active', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['branch_id'], ['church_branches.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_members_profile_id', 'members', ['profile_id'])
    op.create_index('ix_members_branch_id', 'members', ['branch_id'])

    op.create_table(
        'ministry_assignments',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('profile_id', sa.String(), nullable=False),
        sa.Column('branch_id', UUID(as_uuid=True), nullable=False),
        sa.Column('kind', assignment_kind, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['branch_id'], ['church_branches.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ministry_assignments_profile_id', 'ministry_assignments', ['profile_id'])

    op.create_table(
        'member_transfers',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', sa.String(), nullable=False),
        sa.Column('from_branch_id', UUID(as_uuid=True), nullable=False),
        sa.Column('to_branch_id', UUID(as_uuid=True), nullable=False),
        sa.Column('requested_by', sa.String(), nullable=False),
        sa.Column('status', transfer_status, server_default='pending', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('rejection_notes', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.String(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['requested_by'], ['profiles.id']),
        sa.ForeignKeyConstraint(['processed_by'], ['profiles.id']),
        sa.ForeignKeyConstraint(['from_branch_id'], ['church_branches.id']),
        sa.ForeignKeyConstraint(['to_branch_id'], ['church_branches.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_member_transfers_member_id', 'member_transfers', ['member_id'])
    op.create_index('ix_member_transfers_created_at', 'member_transfers', ['created_at'])
    op.create_index(
        'ix_member_transfers_to_branch_status',
        'member_transfers',
        ['to_branch_id', 'status'],
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('action', audit_action, nullable=False),
        sa.Column('details', JSONB(), server_default='{}', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(), nullable=True),
        sa.Column('read', sa.Boolean(), server_default='false', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'streams',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('branch_id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('platform', sa.String(), server_default='custom', nullable=False),
        sa.Column('privacy', stream_privacy, server_default='members_only', nullable=False),
        sa.Column('status', stream_status, server_default='scheduled', nullable=False),
        sa.Column('scheduled_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('viewer_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['branch_id'], ['church_branches.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_streams_branch_id', 'streams', ['branch_id'])


def downgrade() -> None:
    """Downgrade schema - Drop portal tables and enum types."""
    op.drop_table('streams')
    op.drop_table('notifications')
    op.drop_table('audit_logs')
    op.drop_table('member_transfers')
    op.drop_table('ministry_assignments')
    op.drop_table('members')
    op.drop_table('profiles')
    op.drop_table('church_branches')

    bind = op.get_bind()
    for enum_type in (
        stream_status,
        stream_privacy,
        audit_action,
        transfer_status,
        assignment_kind,
        member_status,
        app_role,
    ):
        enum_type.drop(bind, checkfirst=True)
