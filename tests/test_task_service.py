from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import create_profile, create_team
from fusion import app, db
from fusion.models.tables import Notification, Task, TaskOwner
from fusion.services import task_service
from fusion.services.errors import NotFoundError


def _new_task(creator_id, owners, team_id='general', **extra):
    payload = {
        'name': 'Revisar prontuários',
        'description': 'Conferir assinaturas',
        'status': 'pending',
        'priority': 'high',
        'dueDate': '2026-03-10',
        'teamId': team_id,
        'owners': owners,
    }
    payload.update(extra)
    with app.app_context():
        return task_service.create_task(payload, creator_id)


def test_create_task_notifies_every_owner_but_the_creator():
    alice = create_profile('Alice', role='gestor')
    bruno = create_profile('Bruno')

    task = _new_task(alice, [alice, bruno])

    assert task['owners'] == []
    assert task['messages'] == []
    assert task['teamId'] == 'general'

    with app.app_context():
        notifications = Notification.query.all()
        assert len(notifications) == 1
        assert notifications[0].user_id == bruno
        assert notifications[0].from_user_id == alice
        assert notifications[0].type == 'assignment'
        assert notifications[0].content == 'atribuiu uma tarefa para você'
        assert TaskOwner.query.filter_by(task_id=task['id']).count() == 2


def test_general_and_team_scopes_are_exclusive():
    alice = create_profile('Alice')
    team_id = create_team()

    general = _new_task(alice, [alice], team_id='general')
    scoped = _new_task(alice, [alice], team_id=team_id)

    with app.app_context():
        row = db.session.get(Task, general['id'])
        assert row.is_general is True and row.team_id is None
        row = db.session.get(Task, scoped['id'])
        assert row.is_general is False and row.team_id == team_id

        task_service.update_task(scoped['id'], {'teamId': 'general'})
        row = db.session.get(Task, scoped['id'])
        assert row.is_general is True and row.team_id is None

        task_service.update_task(scoped['id'], {'teamId': team_id})
        row = db.session.get(Task, scoped['id'])
        assert row.is_general is False and row.team_id == team_id


def test_update_task_is_sparse():
    alice = create_profile('Alice')
    task = _new_task(alice, [alice])

    with app.app_context():
        task_service.update_task(task['id'], {'name': 'Novo nome', 'dueDate': '2026-04-01'})
        row = db.session.get(Task, task['id'])
        assert row.name == 'Novo nome'
        assert row.due_date == date(2026, 4, 1)
        assert row.description == 'Conferir assinaturas'
        assert row.priority == 'high'


def test_status_and_priority_updates():
    alice = create_profile('Alice')
    task = _new_task(alice, [alice])

    with app.app_context():
        task_service.update_status(task['id'], 'done')
        task_service.update_priority(task['id'], 'low')
        refreshed = task_service.get_task(task['id'])
    assert refreshed['status'] == 'done'
    assert refreshed['priority'] == 'low'


def test_list_tasks_attaches_owners_newest_first():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    first = _new_task(alice, [alice], name='Primeira')
    with app.app_context():
        row = db.session.get(Task, first['id'])
        row.created_at = row.created_at.replace(year=2020)
        db.session.commit()
    second = _new_task(alice, [bruno], name='Segunda')

    with app.app_context():
        tasks = task_service.list_tasks()
    assert [t['id'] for t in tasks] == [second['id'], first['id']]
    assert [o['id'] for o in tasks[0]['owners']] == [bruno]


def test_add_message_notifies_owners_except_author():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    carla = create_profile('Carla')
    task = _new_task(alice, [alice, bruno, carla])

    with app.app_context():
        Notification.query.delete()
        db.session.commit()
        message = task_service.add_message(task['id'], bruno, '', 'audio', 'http://files.test/a.webm')
        contents = {(n.user_id, n.type, n.content) for n in Notification.query.all()}

    assert message['audioUrl'] == 'http://files.test/a.webm'
    assert message['imageUrl'] is None
    assert contents == {
        (alice, 'comment', 'enviou um áudio'),
        (carla, 'comment', 'enviou um áudio'),
    }


def test_notification_failure_does_not_undo_the_task():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    payload = {'name': 'Laudos', 'dueDate': '2026-03-10', 'teamId': 'general', 'owners': [bruno]}

    with app.app_context():
        real_commit = db.session.commit
        commits = []

        def flaky_commit():
            commits.append(1)
            # task row, owner links, then the notifications
            if len(commits) == 3:
                raise OperationalError('INSERT INTO notifications', {}, Exception('database is locked'))
            return real_commit()

        with patch.object(db.session, 'commit', side_effect=flaky_commit):
            task = task_service.create_task(payload, alice)

        assert db.session.get(Task, task['id']) is not None
        assert TaskOwner.query.filter_by(task_id=task['id']).count() == 1
        assert Notification.query.count() == 0


def test_delete_task_removes_children():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    task = _new_task(alice, [bruno])

    with app.app_context():
        task_service.add_message(task['id'], alice, 'oi', 'text')
        task_service.delete_task(task['id'])
        assert db.session.get(Task, task['id']) is None
        assert TaskOwner.query.count() == 0
        assert Notification.query.count() == 0


def test_missing_task_raises_not_found():
    with app.app_context():
        with pytest.raises(NotFoundError):
            task_service.update_status('missing', 'done')
