"""initial attendance schema: users, sessions, tokens, records, devices, alerts

Revision ID: 5b1e0c7d9a21
Revises:
Create Date: 2026-10-19 10:12:44.118402

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7d9a21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('teacher', 'student', name='user_role'), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True, unique=True),
        sa.Column('department', sa.String(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('semester', sa.Integer(), nullable=True),
        sa.Column('sap_id', sa.String(), nullable=True, unique=True),
        sa.Column('roll_no', sa.String(), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_department', 'users', ['department'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('department', sa.String(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_open', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('allowed_radius', sa.Float(), nullable=False),
        sa.Column('current_token', sa.String(), nullable=True),
        sa.Column('token_expiry', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_sessions_id', 'sessions', ['id'])
    op.create_index('ix_sessions_teacher_id', 'sessions', ['teacher_id'])
    op.create_index('ix_sessions_is_open', 'sessions', ['is_open'])
    op.create_index('ix_sessions_current_token', 'sessions', ['current_token'], unique=True)

    op.create_table(
        'token_redemptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('sessions.id'), nullable=False),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('redeemed_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('session_id', 'token', 'student_id', name='uq_redemption_once'),
    )
    op.create_index('ix_token_redemptions_id', 'token_redemptions', ['id'])
    op.create_index('ix_token_redemptions_session_id', 'token_redemptions', ['session_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('sessions.id'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('method', sa.String(), nullable=False),
        sa.Column('marked_at', sa.DateTime(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('location_accuracy', sa.Float(), nullable=True),
        sa.Column('distance_meters', sa.Float(), nullable=True),
        sa.Column('is_manually_set', sa.Boolean(), nullable=False),
        sa.Column('marked_by_teacher_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('last_modified', sa.DateTime(), nullable=False),
        # one record per student per session, enforced by the store
        sa.UniqueConstraint('session_id', 'student_id', name='uq_session_student'),
    )
    op.create_index('ix_attendance_records_id', 'attendance_records', ['id'])
    op.create_index('ix_attendance_records_session_id', 'attendance_records', ['session_id'])
    op.create_index('ix_attendance_records_student_id', 'attendance_records', ['student_id'])

    op.create_table(
        'device_fingerprints',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('device_id', sa.String(), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('device_name', sa.String(), nullable=False),
        sa.Column('user_agent', sa.String(), nullable=False),
        sa.Column('screen_resolution', sa.String(), nullable=True),
        sa.Column('timezone', sa.String(), nullable=True),
        sa.Column('language', sa.String(), nullable=True),
        sa.Column('platform', sa.String(), nullable=True),
        sa.Column('is_trusted', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('first_seen', sa.DateTime(), nullable=False),
        sa.Column('last_seen', sa.DateTime(), nullable=False),
        sa.Column('last_used_for_attendance', sa.DateTime(), nullable=True),
        sa.Column('suspicious_activity_count', sa.Integer(), nullable=False),
    )
    op.create_index('ix_device_fingerprints_id', 'device_fingerprints', ['id'])
    op.create_index('ix_device_fingerprints_device_id', 'device_fingerprints', ['device_id'], unique=True)
    op.create_index('ix_device_fingerprints_student_id', 'device_fingerprints', ['student_id'])

    op.create_table(
        'security_alerts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('severity', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('device_id', sa.String(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('is_resolved', sa.Boolean(), nullable=False),
        sa.Column('resolved_by_teacher_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_security_alerts_id', 'security_alerts', ['id'])
    op.create_index('ix_security_alerts_student_id', 'security_alerts', ['student_id'])


def downgrade() -> None:
    op.drop_table('security_alerts')
    op.drop_table('device_fingerprints')
    op.drop_table('attendance_records')
    op.drop_table('token_redemptions')
    op.drop_table('sessions')
    op.drop_table('users')
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
