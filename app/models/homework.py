import enum
from datetime import datetime, timezone
from app.extensions import db
from app.utils.content_snapshot import block_to_dict, load_snapshot
from app.utils.helpers import as_utc


class AssignmentStatus(enum.Enum):
    DRAFT = 'DRAFT'
    SENT = 'SENT'
    REVIEWED = 'REVIEWED'


class SendMode(enum.Enum):
    """How delivery was triggered. Stored as a label; the engine never sends on its own."""
    MANUAL = 'MANUAL'
    SCHEDULED = 'SCHEDULED'


class LegacyHomework(db.Model):
    """Pre-migration freeform homework row. Read-only for the engine."""
    __tablename__ = 'homework'

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, nullable=False, index=True)
    student_id = db.Column(db.Integer, nullable=False, index=True)
    text = db.Column(db.Text, nullable=False, default='')
    attachments = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=True)
    is_done = db.Column(db.Boolean, default=False, nullable=False)
    deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f'<LegacyHomework {self.id}>'


class HomeworkAssignment(db.Model):
    __tablename__ = 'homework_assignments'

    id = db.Column(db.Integer, primary_key=True)
    legacy_homework_id = db.Column(db.Integer, nullable=True, unique=True)
    teacher_id = db.Column(db.Integer, nullable=False, index=True)
    student_id = db.Column(db.Integer, nullable=False, index=True)
    title = db.Column(db.String(120), nullable=False)
    status = db.Column(db.Enum(AssignmentStatus), default=AssignmentStatus.DRAFT, nullable=False, index=True)
    send_mode = db.Column(db.Enum(SendMode), default=SendMode.MANUAL, nullable=False)
    deadline_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    content_snapshot = db.Column(db.Text, nullable=False, default='[]')

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Reminder dedupe bookkeeping
    reminder_24h_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reminder_morning_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reminder_3h_sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    overdue_reminder_count = db.Column(db.Integer, default=0, nullable=False)
    last_overdue_reminder_at = db.Column(db.DateTime(timezone=True), nullable=True)

    auto_score = db.Column(db.Float, nullable=True)
    manual_score = db.Column(db.Float, nullable=True)
    final_score = db.Column(db.Float, nullable=True)
    teacher_comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def blocks(self):
        return load_snapshot(self.content_snapshot)

    def to_dict(self):
        def _iso(dt):
            dt = as_utc(dt)
            return dt.isoformat() if dt else None

        return {
            'id': self.id,
            'legacy_homework_id': self.legacy_homework_id,
            'teacher_id': self.teacher_id,
            'student_id': self.student_id,
            'title': self.title,
            'status': self.status.value,
            'send_mode': self.send_mode.value,
            'deadline_at': _iso(self.deadline_at),
            'content_snapshot': [block_to_dict(b) for b in self.blocks],
            'sent_at': _iso(self.sent_at),
            'reviewed_at': _iso(self.reviewed_at),
            'reminder_24h_sent_at': _iso(self.reminder_24h_sent_at),
            'reminder_morning_sent_at': _iso(self.reminder_morning_sent_at),
            'reminder_3h_sent_at': _iso(self.reminder_3h_sent_at),
            'overdue_reminder_count': self.overdue_reminder_count or 0,
            'last_overdue_reminder_at': _iso(self.last_overdue_reminder_at),
            'auto_score': self.auto_score,
            'manual_score': self.manual_score,
            'final_score': self.final_score,
            'teacher_comment': self.teacher_comment,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<HomeworkAssignment {self.id} ({self.status.value})>'
