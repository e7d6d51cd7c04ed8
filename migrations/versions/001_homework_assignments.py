"""Add structured homework assignments and notifications

Revision ID: 001_homework_assignments
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = '001_homework_assignments'
down_revision = None
branch_labels = None
depends_on = None

assignment_status = sa.Enum('DRAFT', 'SENT', 'REVIEWED', name='assignmentstatus')
send_mode = sa.Enum('MANUAL', 'SCHEDULED', name='sendmode')
notification_type = sa.Enum(
    'HOMEWORK_ASSIGNED', 'HOMEWORK_REVIEWED', 'HOMEWORK_REMINDER', 'HOMEWORK_OVERDUE',
    name='notificationtype',
)


def upgrade():
    # The legacy `homework` table already exists and is left untouched.

    op.create_table('homework_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('legacy_homework_id', sa.Integer(), nullable=True),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(120), nullable=False),
        sa.Column('status', assignment_status, nullable=False, server_default='DRAFT'),
        sa.Column('send_mode', send_mode, nullable=False, server_default='MANUAL'),
        sa.Column('deadline_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('content_snapshot', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_24h_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_morning_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reminder_3h_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('overdue_reminder_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_overdue_reminder_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('auto_score', sa.Float(), nullable=True),
        sa.Column('manual_score', sa.Float(), nullable=True),
        sa.Column('final_score', sa.Float(), nullable=True),
        sa.Column('teacher_comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('legacy_homework_id', name='uq_homework_assignments_legacy_homework_id'),
    )
    op.create_index('ix_homework_assignments_teacher_id', 'homework_assignments', ['teacher_id'])
    op.create_index('ix_homework_assignments_student_id', 'homework_assignments', ['student_id'])
    op.create_index('ix_homework_assignments_status', 'homework_assignments', ['status'])
    op.create_index('ix_homework_assignments_deadline_at', 'homework_assignments', ['deadline_at'])

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', notification_type, nullable=False),
        sa.Column('dedupe_key', sa.String(120), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('link', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('dedupe_key', name='uq_notifications_dedupe_key'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade():
    op.drop_index('ix_notifications_user_id', 'notifications')
    op.drop_table('notifications')
    op.drop_index('ix_homework_assignments_deadline_at', 'homework_assignments')
    op.drop_index('ix_homework_assignments_status', 'homework_assignments')
    op.drop_index('ix_homework_assignments_student_id', 'homework_assignments')
    op.drop_index('ix_homework_assignments_teacher_id', 'homework_assignments')
    op.drop_table('homework_assignments')
    assignment_status.drop(op.get_bind(), checkfirst=True)
    send_mode.drop(op.get_bind(), checkfirst=True)
    notification_type.drop(op.get_bind(), checkfirst=True)
