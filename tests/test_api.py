from datetime import datetime, timedelta, timezone

from app.models.notification import Notification

DEADLINE = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)


def create(client, **overrides):
    payload = {
        'teacher_id': 1,
        'student_id': 2,
        'text': 'Translate the paragraph',
        'attachments': [{'url': 'https://cdn/paragraph.pdf', 'fileName': 'paragraph.pdf'}],
        'deadline_at': DEADLINE.isoformat(),
    }
    payload.update(overrides)
    return client.post('/api/assignments', json=payload)


def test_create_assignment(client):
    resp = create(client)
    assert resp.status_code == 201
    data = resp.get_json()
    assert data['status'] == 'DRAFT'
    assert data['title'] == 'Translate the paragraph'
    assert [b['type'] for b in data['content_snapshot']] == ['TEXT', 'MEDIA']
    assert data['deadline_at'] == DEADLINE.isoformat()


def test_create_rejects_empty_content(client):
    resp = create(client, text='', attachments=[])
    assert resp.status_code == 400
    assert 'error' in resp.get_json()


def test_create_rejects_bad_deadline(client):
    assert create(client, deadline_at='next tuesday').status_code == 400


def test_full_lifecycle(client, app):
    assignment_id = create(client).get_json()['id']

    sent = client.post(f'/api/assignments/{assignment_id}/send')
    assert sent.status_code == 200
    assert sent.get_json()['status'] == 'SENT'

    assert client.post(f'/api/assignments/{assignment_id}/send').status_code == 409

    scored = client.post(f'/api/assignments/{assignment_id}/auto-score', json={'auto_score': 60})
    assert scored.get_json()['final_score'] == 60

    reviewed = client.post(f'/api/assignments/{assignment_id}/review',
                           json={'manual_score': 85, 'teacher_comment': 'Well done'})
    assert reviewed.status_code == 200
    body = reviewed.get_json()
    assert body['status'] == 'REVIEWED'
    assert (body['auto_score'], body['manual_score'], body['final_score']) == (60, 85, 85)

    assert client.post(f'/api/assignments/{assignment_id}/review', json={}).status_code == 409
    assert Notification.query.filter_by(user_id=2).count() == 2


def test_review_draft_conflicts(client):
    assignment_id = create(client).get_json()['id']
    resp = client.post(f'/api/assignments/{assignment_id}/review', json={'manual_score': 5})
    assert resp.status_code == 409


def test_review_rejects_bad_score(client):
    assignment_id = create(client).get_json()['id']
    client.post(f'/api/assignments/{assignment_id}/send')
    resp = client.post(f'/api/assignments/{assignment_id}/review', json={'manual_score': 'lots'})
    assert resp.status_code == 400


def test_patch_draft(client):
    assignment_id = create(client).get_json()['id']
    resp = client.patch(f'/api/assignments/{assignment_id}', json={'deadline_at': None})
    assert resp.status_code == 200
    assert resp.get_json()['deadline_at'] is None
    assert resp.get_json()['title'] == 'Translate the paragraph'


def test_auto_score_requires_value(client):
    assignment_id = create(client).get_json()['id']
    client.post(f'/api/assignments/{assignment_id}/send')
    assert client.post(f'/api/assignments/{assignment_id}/auto-score', json={}).status_code == 400


def test_unknown_assignment_is_404(client):
    assert client.get('/api/assignments/12345').status_code == 404
    assert client.post('/api/assignments/12345/send').status_code == 404


def test_list_assignments_filters(client):
    first = create(client).get_json()['id']
    create(client, student_id=3)
    client.post(f'/api/assignments/{first}/send')

    sent = client.get('/api/assignments?status=sent').get_json()['assignments']
    assert [a['id'] for a in sent] == [first]
    by_student = client.get('/api/assignments?student_id=3').get_json()['assignments']
    assert len(by_student) == 1
    assert client.get('/api/assignments?status=archived').status_code == 400


def test_evaluate_reminders(client):
    assignment_id = create(client).get_json()['id']
    client.post(f'/api/assignments/{assignment_id}/send')

    now = (DEADLINE - timedelta(hours=23)).isoformat()
    resp = client.post('/api/reminders/evaluate', json={'now': now})
    assert resp.get_json() == {'signals': [{'assignment_id': assignment_id, 'kind': 'REMINDER_24H'}]}

    again = client.post('/api/reminders/evaluate', json={'now': now})
    assert again.get_json() == {'signals': []}


def test_evaluate_reminders_dispatch_flag(client):
    assignment_id = create(client).get_json()['id']
    client.post(f'/api/assignments/{assignment_id}/send')
    now = (DEADLINE - timedelta(hours=23)).isoformat()

    resp = client.post('/api/reminders/evaluate', json={'now': now, 'dispatch': 'false'})
    assert resp.get_json() == {'signals': [{'assignment_id': assignment_id, 'kind': 'REMINDER_24H'}]}
    assert Notification.query.filter_by(dedupe_key=f'HOMEWORK_REMINDER_24H:{assignment_id}').count() == 0

    assert client.post('/api/reminders/evaluate', json={'now': now, 'dispatch': 'maybe'}).status_code == 400
    assert client.post('/api/reminders/evaluate', json={'now': now, 'dispatch': 0}).status_code == 400


def test_send_mode_is_a_stored_label(client):
    resp = create(client, send_mode='scheduled')
    assert resp.status_code == 201
    body = resp.get_json()
    assert (body['send_mode'], body['status']) == ('SCHEDULED', 'DRAFT')

    sent = client.post(f"/api/assignments/{body['id']}/send").get_json()
    assert (sent['send_mode'], sent['status']) == ('SCHEDULED', 'SENT')

    assert create(client, send_mode='whenever').status_code == 400
