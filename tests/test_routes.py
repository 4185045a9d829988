from conftest import create_profile, create_team, login
from fusion import app, db
from fusion.models.tables import CalendarEvent, Notification, Profile, Task
from fusion.services import notification_service
from fusion.services.boards import board_registry


def _task_payload(owners, **extra):
    payload = {
        'name': 'Organizar escala',
        'status': 'pending',
        'priority': 'medium',
        'dueDate': '2026-03-20',
        'teamId': 'general',
        'owners': owners,
    }
    payload.update(extra)
    return payload


# =============================================================================
# AUTH
# =============================================================================

def test_ping_requires_session(client):
    assert client.get('/ping').status_code == 401
    login(client, create_profile('Alice'))
    assert client.get('/ping').status_code == 204


def test_health_reports_database(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'database': 'ok', 'streams': 0}


def test_api_login_and_me(client):
    create_profile('Alice', email='alice@fusionclinic.com.br', password='segredo1')

    resp = client.post('/api/auth/login', json={'email': 'alice@fusionclinic.com.br', 'password': 'errada'})
    assert resp.status_code == 401

    resp = client.post('/api/auth/login', json={'email': 'ALICE@fusionclinic.com.br', 'password': 'segredo1'})
    assert resp.status_code == 200
    assert resp.get_json()['email'] == 'alice@fusionclinic.com.br'

    me = client.get('/api/me').get_json()
    assert me['name'] == 'Alice'
    assert 'password_hash' not in me


def test_form_login_page(client):
    create_profile('Alice', email='alice@fusionclinic.com.br', password='segredo1')
    assert client.get('/login').status_code == 200

    resp = client.post('/login', data={'email': 'alice@fusionclinic.com.br', 'password': 'segredo1'})
    assert resp.status_code == 302


def test_api_requires_login(client):
    resp = client.get('/api/tasks')
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'unauthorized'


def test_logout_releases_board(client):
    alice = create_profile('Alice')
    login(client, alice)
    client.get('/api/dashboard')
    assert alice in board_registry

    assert client.post('/logout', json={}).status_code == 204
    assert alice not in board_registry


# =============================================================================
# TASKS
# =============================================================================

def test_create_task_route_notifies_other_owner(client):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    login(client, alice)

    resp = client.post('/api/tasks', json=_task_payload([alice, bruno]))
    assert resp.status_code == 201
    task = resp.get_json()
    assert task['owners'] == []

    with app.app_context():
        notifications = Notification.query.all()
        assert [(n.user_id, n.type) for n in notifications] == [(bruno, 'assignment')]


def test_create_task_requires_an_owner(client):
    login(client, create_profile('Alice'))
    resp = client.post('/api/tasks', json=_task_payload([]))
    assert resp.status_code == 400
    assert 'owners' in resp.get_json()['fields']
    with app.app_context():
        assert Task.query.count() == 0


def test_status_change_from_pending_to_done(client):
    alice = create_profile('Alice')
    login(client, alice)
    task_id = client.post('/api/tasks', json=_task_payload([alice])).get_json()['id']

    resp = client.post(f'/api/tasks/{task_id}/status', json={'status': 'done'})
    assert resp.status_code == 200
    assert client.get(f'/api/tasks/{task_id}').get_json()['status'] == 'done'

    assert client.post(f'/api/tasks/{task_id}/status', json={'status': 'archived'}).status_code == 400


def test_task_messages_and_edits(client):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    team_id = create_team()
    login(client, alice)
    task_id = client.post('/api/tasks', json=_task_payload([alice, bruno])).get_json()['id']

    assert client.post(f'/api/tasks/{task_id}/messages', json={'type': 'text', 'content': '  '}).status_code == 400
    resp = client.post(f'/api/tasks/{task_id}/messages', json={'type': 'text', 'content': 'Feito?'})
    assert resp.status_code == 201

    resp = client.patch(f'/api/tasks/{task_id}', json={'teamId': team_id, 'priority': 'high'})
    task = resp.get_json()
    assert task['teamId'] == team_id and task['isGeneral'] is False
    assert task['priority'] == 'high'
    assert [m['content'] for m in task['messages']] == ['Feito?']

    assert client.delete(f'/api/tasks/{task_id}').status_code == 204
    assert client.get(f'/api/tasks/{task_id}').status_code == 404


def test_member_only_sees_visible_tasks(client):
    manager = create_profile('Gestora', role='gestor')
    fisio = create_team('Fisio')
    nutri = create_team('Nutri')
    member = create_profile('Bruno', team_id=fisio)
    login(client, manager)
    client.post('/api/tasks', json=_task_payload([manager], name='Da fisio', teamId=fisio))
    client.post('/api/tasks', json=_task_payload([manager], name='Da nutri', teamId=nutri))

    login(client, member)
    names = [t['name'] for t in client.get('/api/tasks').get_json()]
    assert names == ['Da fisio']


# =============================================================================
# DASHBOARD
# =============================================================================

def test_dashboard_views_and_optimistic_status(client, deferred_reloads):
    alice = create_profile('Alice')
    login(client, alice)
    task_id = client.post('/api/dashboard/tasks', json=_task_payload([alice])).get_json()['id']

    table = client.get('/api/dashboard').get_json()
    assert [t['id'] for t in table['groups']['active']] == [task_id]

    resp = client.post(f'/api/dashboard/tasks/{task_id}/status', json={'status': 'done'})
    assert resp.get_json()['status'] == 'done'

    kanban = client.get('/api/dashboard?view=kanban').get_json()['groups']
    assert [t['id'] for t in kanban['done']] == [task_id]
    assert deferred_reloads, 'commit should schedule a board reload'

    with app.app_context():
        assert db.session.get(Task, task_id).status == 'done'


def test_dashboard_rejected_delete_restores_task(client, monkeypatch):
    alice = create_profile('Alice')
    login(client, alice)
    task_id = client.post('/api/dashboard/tasks', json=_task_payload([alice])).get_json()['id']

    from fusion.services import task_service
    from fusion.services.errors import RemoteOperationError

    def rejected(_task_id):
        raise RemoteOperationError('insufficient privilege', code='42501')

    monkeypatch.setattr(task_service, 'delete_task', rejected)
    resp = client.delete(f'/api/dashboard/tasks/{task_id}')
    assert resp.status_code == 502
    assert resp.get_json()['message'] == 'Não foi possível concluir a operação. Tente novamente.'

    board = board_registry.get(alice)
    assert board.find(task_id) is not None


def test_my_tasks_endpoint(client):
    alice = create_profile('Alice')
    login(client, alice)
    client.post('/api/dashboard/tasks', json=_task_payload([alice], teamId='general'))

    buckets = client.get('/api/dashboard/my-tasks').get_json()
    assert set(buckets) == {'general', 'overdue', 'today', 'thisWeek', 'completed'}
    assert len(buckets['general']) == 1


def test_dashboard_create_keeps_owners_on_the_board(client):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    login(client, alice)
    client.get('/api/dashboard')

    task = client.post('/api/dashboard/tasks', json=_task_payload([alice, bruno])).get_json()
    assert [o['id'] for o in task['owners']] == [alice, bruno]

    board_task = board_registry.get(alice).find(task['id'])
    assert {o['id'] for o in board_task['owners']} == {alice, bruno}


def test_board_reloads_on_own_notifications_only(client, deferred_reloads):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    login(client, alice)
    client.get('/api/dashboard')
    deferred_reloads.clear()

    with app.app_context():
        notification_service.fan_out([bruno], alice, None, 'comment', 'comentou na tarefa')
    assert deferred_reloads == []

    with app.app_context():
        notification_service.fan_out([alice], bruno, None, 'comment', 'comentou na tarefa')
    assert len(deferred_reloads) == 1


# =============================================================================
# TEAMS AND MEMBERS
# =============================================================================

def test_team_writes_require_manager(client):
    login(client, create_profile('Bruno'))
    assert client.post('/api/teams', json={'name': 'Nova'}).status_code == 403
    assert client.post('/api/members', json={}).status_code == 403


def test_manager_manages_teams_and_members(client):
    login(client, create_profile('Gestora', role='gestor'))

    team = client.post('/api/teams', json={'name': 'Nutrição'}).get_json()
    member = client.post('/api/members', json={
        'name': 'Carla', 'email': 'Carla@FusionClinic.com.br', 'password': 'abcdef', 'role': 'membro', 'teamId': 'general',
    }).get_json()
    assert member['email'] == 'carla@fusionclinic.com.br'
    assert member['teamId'] is None

    assert client.post(f"/api/teams/{team['id']}/members", json={'userId': member['id']}).status_code == 204
    teams = client.get('/api/teams').get_json()
    assert [m['name'] for m in teams[0]['members']] == ['Carla', 'Gestora']

    assert client.delete(f"/api/members/{member['id']}/team").status_code == 204
    with app.app_context():
        assert db.session.get(Profile, member['id']).team_id is None


def test_duplicate_member_email_is_translated(client):
    login(client, create_profile('Gestora', role='gestor', email='gestora@fusionclinic.com.br'))
    resp = client.post('/api/members', json={
        'name': 'Outra', 'email': 'gestora@fusionclinic.com.br', 'password': 'abcdef',
    })
    assert resp.status_code == 409
    body = resp.get_json()
    assert body['code'] == '23505'
    assert body['message'] == 'Este e-mail já está cadastrado.'


def test_profile_update(client):
    alice = create_profile('Alice')
    login(client, alice)
    resp = client.patch('/api/profile', json={'name': 'Alice Souza', 'avatarUrl': 'http://files.test/a.png'})
    assert resp.get_json()['name'] == 'Alice Souza'
    assert resp.get_json()['avatar'] == 'http://files.test/a.png'


# =============================================================================
# CALENDAR
# =============================================================================

def test_calendar_event_lifecycle(client):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    login(client, alice)

    resp = client.post('/api/calendar/events', json={
        'title': 'Reunião geral', 'type': 'reuniao', 'date': '2026-03-12',
        'startTime': '09:00', 'endTime': '10:00', 'participants': [bruno],
    })
    assert resp.status_code == 201
    event = resp.get_json()
    assert event['isGeneral'] is True
    assert [p['id'] for p in event['participants']] == [bruno]
    assert event['createdBy']['id'] == alice

    resp = client.patch(f"/api/calendar/events/{event['id']}", json={'title': 'Reunião mensal', 'participants': []})
    assert resp.status_code == 204
    events = client.get('/api/calendar/events').get_json()
    assert events[0]['title'] == 'Reunião mensal'
    assert events[0]['participants'] == []

    assert client.delete(f"/api/calendar/events/{event['id']}").status_code == 204
    with app.app_context():
        assert CalendarEvent.query.count() == 0


def test_calendar_edit_rejects_bad_date_and_type(client):
    alice = create_profile('Alice')
    login(client, alice)
    event_id = client.post('/api/calendar/events', json={
        'title': 'Reunião geral', 'type': 'reuniao', 'date': '2026-03-12',
    }).get_json()['id']

    resp = client.patch(f'/api/calendar/events/{event_id}', json={'date': 'amanha', 'type': 'festa'})
    assert resp.status_code == 400
    assert {'date', 'type'} <= set(resp.get_json()['fields'])

    assert client.patch(f'/api/calendar/events/{event_id}', json={'date': '13/03/2026', 'type': 'saude'}).status_code == 204
    with app.app_context():
        event = db.session.get(CalendarEvent, event_id)
        assert event.date.isoformat() == '2026-03-13'
        assert event.type == 'saude'
