import logging

from app.models.homework import AssignmentStatus, SendMode
from app.utils.assignment_store import AssignmentCreateRequest
from app.utils.content_snapshot import (
    build_snapshot, derive_title, has_content, snapshot_attachments, snapshot_text,
)
from app.utils.errors import DispatchError, InvalidTransitionError, ValidationError
from app.utils.helpers import as_utc, utcnow
from app.utils.scoring import resolve_final_score, validate_score

logger = logging.getLogger(__name__)

DEFAULT_TITLE = 'Homework'

_UNSET = object()


def _require_status(assignment, *allowed, action):
    if assignment.status not in allowed:
        raise InvalidTransitionError(
            f'Cannot {action} assignment {assignment.id} in status {assignment.status.value}'
        )


class LifecycleController:
    """
    Drives assignments through DRAFT -> SENT -> REVIEWED.

    Every write goes through ``store.update`` conditioned on the status that
    was read, so two concurrent calls from the same source state cannot both
    succeed: the loser gets ``ConflictError``.
    """

    def __init__(self, store, notifier=None, notify_on_send=True, notify_on_review=True):
        self.store = store
        self.notifier = notifier
        self.notify_on_send = notify_on_send
        self.notify_on_review = notify_on_review

    def get_assignment(self, assignment_id):
        return self.store.get_by_id(assignment_id)

    def list_assignments(self, teacher_id=None, student_id=None, status=None):
        return self.store.list(teacher_id=teacher_id, student_id=student_id, status=status)

    def create_assignment(self, teacher_id, student_id, text='', attachments=None,
                          deadline_at=None, send_mode=SendMode.MANUAL, now=None):
        if teacher_id is None or student_id is None:
            raise ValidationError('teacher_id and student_id are required')
        if not has_content(text, attachments):
            raise ValidationError('Assignment content is required')

        now = as_utc(now) if now is not None else utcnow()
        request = AssignmentCreateRequest(
            teacher_id=teacher_id,
            student_id=student_id,
            title=derive_title(text, placeholder=DEFAULT_TITLE),
            content_snapshot=build_snapshot(text, attachments),
            status=AssignmentStatus.DRAFT,
            send_mode=send_mode,
            deadline_at=as_utc(deadline_at),
            created_at=now,
            updated_at=now,
        )
        assignment = self.store.create(request)
        logger.info('[LIFECYCLE] assignment %s created by teacher %s', assignment.id, teacher_id)
        return assignment

    def update_draft(self, assignment_id, text=None, attachments=None, deadline_at=_UNSET):
        """Amend content or deadline while the assignment is still a draft."""
        assignment = self.store.get_by_id(assignment_id)
        _require_status(assignment, AssignmentStatus.DRAFT, action='edit')

        changes = {}
        if text is not None or attachments is not None:
            blocks = assignment.blocks
            new_text = text if text is not None else snapshot_text(blocks)
            new_attachments = attachments if attachments is not None else snapshot_attachments(blocks)
            if not has_content(new_text, new_attachments):
                raise ValidationError('Assignment content is required')
            request = AssignmentCreateRequest(
                teacher_id=assignment.teacher_id,
                student_id=assignment.student_id,
                title=derive_title(new_text, placeholder=DEFAULT_TITLE),
                content_snapshot=build_snapshot(new_text, new_attachments),
            )
            fields = request.to_fields()
            changes['title'] = fields['title']
            changes['content_snapshot'] = fields['content_snapshot']
        if deadline_at is not _UNSET:
            changes['deadline_at'] = as_utc(deadline_at)
        if not changes:
            return assignment

        return self.store.update(assignment_id, changes, expected={'status': AssignmentStatus.DRAFT})

    def send_assignment(self, assignment_id, now=None):
        assignment = self.store.get_by_id(assignment_id)
        _require_status(assignment, AssignmentStatus.DRAFT, action='send')

        now = as_utc(now) if now is not None else utcnow()
        assignment = self.store.update(
            assignment_id,
            {'status': AssignmentStatus.SENT, 'sent_at': now},
            expected={'status': AssignmentStatus.DRAFT},
        )
        logger.info('[LIFECYCLE] assignment %s sent', assignment_id)
        if self.notify_on_send:
            self._notify(assignment, 'ASSIGNED')
        return assignment

    def review_assignment(self, assignment_id, manual_score=None, teacher_comment=None, now=None):
        manual_score = validate_score(manual_score, 'manual_score')
        if teacher_comment is not None and not isinstance(teacher_comment, str):
            raise ValidationError('teacher_comment must be a string')

        assignment = self.store.get_by_id(assignment_id)
        _require_status(assignment, AssignmentStatus.SENT, action='review')

        now = as_utc(now) if now is not None else utcnow()
        if manual_score is None:
            manual_score = assignment.manual_score
        comment = teacher_comment.strip() if teacher_comment else None
        assignment = self.store.update(
            assignment_id,
            {
                'status': AssignmentStatus.REVIEWED,
                'reviewed_at': now,
                'manual_score': manual_score,
                'final_score': resolve_final_score(assignment.auto_score, manual_score),
                'teacher_comment': comment or assignment.teacher_comment,
            },
            expected={'status': AssignmentStatus.SENT},
        )
        logger.info('[LIFECYCLE] assignment %s reviewed (final score %s)',
                    assignment_id, assignment.final_score)
        if self.notify_on_review:
            self._notify(assignment, 'REVIEWED')
        return assignment

    def record_auto_score(self, assignment_id, auto_score):
        """Store an automatic score and re-derive the final one. Manual score still wins."""
        auto_score = validate_score(auto_score, 'auto_score')
        assignment = self.store.get_by_id(assignment_id)
        _require_status(assignment, AssignmentStatus.SENT, AssignmentStatus.REVIEWED, action='score')

        return self.store.update(
            assignment_id,
            {
                'auto_score': auto_score,
                'final_score': resolve_final_score(auto_score, assignment.manual_score),
            },
            expected={'status': assignment.status, 'manual_score': assignment.manual_score},
        )

    def _notify(self, assignment, kind):
        if self.notifier is None:
            return
        try:
            self.notifier.dispatch(assignment, kind)
        except DispatchError as e:
            logger.warning('[LIFECYCLE] %s notification for assignment %s failed: %s',
                           kind, assignment.id, e)
