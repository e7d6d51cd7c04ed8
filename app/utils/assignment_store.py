"""
Persistence contract for homework assignments and its SQLAlchemy implementation.

Every write is atomic per record. ``update`` is conditional: callers pass the
field values they read (``expected``) and the write only lands when the row
still matches, otherwise ``ConflictError`` is raised.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.homework import AssignmentStatus, HomeworkAssignment, SendMode
from app.utils.content_snapshot import dump_snapshot
from app.utils.errors import ConflictError, NotFoundError
from app.utils.helpers import utcnow


@dataclass
class AssignmentCreateRequest:
    teacher_id: int
    student_id: int
    title: str
    content_snapshot: tuple
    status: AssignmentStatus = AssignmentStatus.DRAFT
    send_mode: SendMode = SendMode.MANUAL
    deadline_at: Optional[datetime] = None
    legacy_homework_id: Optional[int] = None
    sent_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    teacher_comment: Optional[str] = None
    auto_score: Optional[float] = None
    manual_score: Optional[float] = None
    final_score: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_fields(self):
        now = utcnow()
        return {
            'teacher_id': self.teacher_id,
            'student_id': self.student_id,
            'legacy_homework_id': self.legacy_homework_id,
            'title': self.title,
            'status': self.status,
            'send_mode': self.send_mode,
            'deadline_at': self.deadline_at,
            'content_snapshot': dump_snapshot(self.content_snapshot),
            'sent_at': self.sent_at,
            'reviewed_at': self.reviewed_at,
            'reminder_24h_sent_at': None,
            'reminder_morning_sent_at': None,
            'reminder_3h_sent_at': None,
            'overdue_reminder_count': 0,
            'last_overdue_reminder_at': None,
            'teacher_comment': self.teacher_comment,
            'auto_score': self.auto_score,
            'manual_score': self.manual_score,
            'final_score': self.final_score,
            'created_at': self.created_at or now,
            'updated_at': self.updated_at or self.created_at or now,
        }


class AssignmentStore(ABC):
    """Storage contract the lifecycle, scheduler and migration depend on."""

    @abstractmethod
    def create(self, request: AssignmentCreateRequest) -> HomeworkAssignment:
        """Insert a new assignment. ConflictError if the legacy id is taken."""

    def create_if_absent(self, request: AssignmentCreateRequest) -> Tuple[HomeworkAssignment, bool]:
        """Insert unless an assignment already references the same legacy record."""
        if request.legacy_homework_id is not None:
            existing = self.get_by_legacy_id(request.legacy_homework_id)
            if existing is not None:
                return existing, False
        try:
            return self.create(request), True
        except ConflictError:
            existing = self.get_by_legacy_id(request.legacy_homework_id)
            if existing is None:
                raise
            return existing, False

    @abstractmethod
    def get_by_id(self, assignment_id) -> HomeworkAssignment:
        """NotFoundError when no such assignment exists."""

    @abstractmethod
    def get_by_legacy_id(self, legacy_id) -> Optional[HomeworkAssignment]:
        pass

    @abstractmethod
    def update(self, assignment_id, changes, expected=None) -> HomeworkAssignment:
        """Apply ``changes`` iff the row still matches ``expected``; ConflictError otherwise."""

    @abstractmethod
    def scan_page(self, cursor, size, status=None, with_deadline=False):
        """Return ``(records, next_cursor)`` for ids greater than ``cursor``, ascending."""

    @abstractmethod
    def list(self, teacher_id=None, student_id=None, status=None):
        pass


class SqlAssignmentStore(AssignmentStore):

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def create(self, request):
        assignment = HomeworkAssignment(**request.to_fields())
        self.session.add(assignment)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError(
                f'Legacy homework {request.legacy_homework_id} is already migrated'
            )
        return assignment

    def get_by_id(self, assignment_id):
        assignment = self.session.get(HomeworkAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError(f'Assignment {assignment_id} not found')
        return assignment

    def get_by_legacy_id(self, legacy_id):
        if legacy_id is None:
            return None
        return self.session.query(HomeworkAssignment).filter_by(legacy_homework_id=legacy_id).first()

    def update(self, assignment_id, changes, expected=None):
        query = self.session.query(HomeworkAssignment).filter(HomeworkAssignment.id == assignment_id)
        for name, value in (expected or {}).items():
            column = getattr(HomeworkAssignment, name)
            query = query.filter(column.is_(None) if value is None else column == value)

        values = dict(changes)
        values.setdefault('updated_at', utcnow())
        updated = query.update(values, synchronize_session='fetch')
        if not updated:
            self.session.rollback()
            if self.session.get(HomeworkAssignment, assignment_id) is None:
                raise NotFoundError(f'Assignment {assignment_id} not found')
            raise ConflictError(f'Assignment {assignment_id} was changed concurrently')
        self.session.commit()
        return self.session.get(HomeworkAssignment, assignment_id, populate_existing=True)

    def scan_page(self, cursor, size, status=None, with_deadline=False):
        query = self.session.query(HomeworkAssignment)
        if cursor is not None:
            query = query.filter(HomeworkAssignment.id > cursor)
        if status is not None:
            query = query.filter(HomeworkAssignment.status == status)
        if with_deadline:
            query = query.filter(HomeworkAssignment.deadline_at.isnot(None))
        records = query.order_by(HomeworkAssignment.id).limit(size).all()
        next_cursor = records[-1].id if records else cursor
        return records, next_cursor

    def list(self, teacher_id=None, student_id=None, status=None):
        query = self.session.query(HomeworkAssignment)
        if teacher_id is not None:
            query = query.filter_by(teacher_id=teacher_id)
        if student_id is not None:
            query = query.filter_by(student_id=student_id)
        if status is not None:
            query = query.filter_by(status=status)
        return query.order_by(HomeworkAssignment.created_at.desc(), HomeworkAssignment.id.desc()).all()
