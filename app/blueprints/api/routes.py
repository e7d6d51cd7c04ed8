from flask import jsonify, request
from app.blueprints.api import bp
from app.models.homework import AssignmentStatus, SendMode
from app.utils.engine import get_lifecycle_controller, get_reminder_scheduler
from app.utils.errors import ValidationError
from app.utils.helpers import parse_datetime, safe_int


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _datetime_field(data, name):
    try:
        return parse_datetime(data.get(name))
    except ValueError:
        raise ValidationError(f'{name} must be an ISO-8601 datetime')


_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off')


def _flag_field(data, name, default=True):
    value = data.get(name, default)
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower() if isinstance(value, str) else None
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValidationError(f'{name} must be a boolean')


def _status_arg(value):
    if not value:
        return None
    try:
        return AssignmentStatus(value.upper())
    except ValueError:
        raise ValidationError(f'Unknown status: {value}')


@bp.route('/assignments', methods=['POST'])
def create_assignment():
    data = _json_body()
    try:
        send_mode = SendMode(str(data.get('send_mode', SendMode.MANUAL.value)).upper())
    except ValueError:
        raise ValidationError('Unknown send_mode')

    assignment = get_lifecycle_controller().create_assignment(
        teacher_id=safe_int(data.get('teacher_id'), None),
        student_id=safe_int(data.get('student_id'), None),
        text=data.get('text') or '',
        attachments=data.get('attachments'),
        deadline_at=_datetime_field(data, 'deadline_at'),
        send_mode=send_mode,
    )
    return jsonify(assignment.to_dict()), 201


@bp.route('/assignments')
def list_assignments():
    assignments = get_lifecycle_controller().list_assignments(
        teacher_id=safe_int(request.args.get('teacher_id'), None),
        student_id=safe_int(request.args.get('student_id'), None),
        status=_status_arg(request.args.get('status')),
    )
    return jsonify({'assignments': [a.to_dict() for a in assignments]})


@bp.route('/assignments/<int:assignment_id>')
def get_assignment(assignment_id):
    return jsonify(get_lifecycle_controller().get_assignment(assignment_id).to_dict())


@bp.route('/assignments/<int:assignment_id>', methods=['PATCH'])
def update_assignment(assignment_id):
    data = _json_body()
    kwargs = {'text': data.get('text'), 'attachments': data.get('attachments')}
    if 'deadline_at' in data:
        kwargs['deadline_at'] = _datetime_field(data, 'deadline_at')
    assignment = get_lifecycle_controller().update_draft(assignment_id, **kwargs)
    return jsonify(assignment.to_dict())


@bp.route('/assignments/<int:assignment_id>/send', methods=['POST'])
def send_assignment(assignment_id):
    assignment = get_lifecycle_controller().send_assignment(assignment_id)
    return jsonify(assignment.to_dict())


@bp.route('/assignments/<int:assignment_id>/review', methods=['POST'])
def review_assignment(assignment_id):
    data = _json_body()
    assignment = get_lifecycle_controller().review_assignment(
        assignment_id,
        manual_score=data.get('manual_score'),
        teacher_comment=data.get('teacher_comment'),
    )
    return jsonify(assignment.to_dict())


@bp.route('/assignments/<int:assignment_id>/auto-score', methods=['POST'])
def record_auto_score(assignment_id):
    data = _json_body()
    if data.get('auto_score') is None:
        raise ValidationError('auto_score is required')
    assignment = get_lifecycle_controller().record_auto_score(assignment_id, data['auto_score'])
    return jsonify(assignment.to_dict())


@bp.route('/reminders/evaluate', methods=['POST'])
def evaluate_reminders():
    data = _json_body()
    scheduler = get_reminder_scheduler(dispatch=_flag_field(data, 'dispatch'))
    signals = scheduler.evaluate(_datetime_field(data, 'now'))
    return jsonify({'signals': [s.to_dict() for s in signals]})
