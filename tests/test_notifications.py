from conftest import create_profile, login
from fusion import app, db
from fusion.models.tables import Notification
from fusion.services import notification_service


def _seed_inbox(owner, sender, count=3):
    with app.app_context():
        notification_service.fan_out([owner], sender, None, 'update', 'atualizou algo')
        for _ in range(count - 1):
            notification_service.fan_out([owner], sender, None, 'comment', 'comentou na tarefa')
        return [n.id for n in Notification.query.filter_by(user_id=owner).all()]


def test_fan_out_skips_actor_and_duplicates():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')

    with app.app_context():
        notified = notification_service.fan_out([bruno, alice, bruno, None], alice, None, 'mention', 'mencionou você')
        assert notified == [bruno]
        assert Notification.query.count() == 1


def test_mark_single_notification_read_leaves_others():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    ids = _seed_inbox(bruno, alice)

    with app.app_context():
        assert notification_service.unread_count(bruno) == 3
        notification_service.mark_notification_read(ids[0], bruno)
        states = {n.id: n.read for n in Notification.query.all()}
        assert notification_service.unread_count(bruno) == 2

    assert states[ids[0]] is True
    assert [states[i] for i in ids[1:]] == [False, False]


def test_mark_all_read_only_touches_the_user():
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    _seed_inbox(bruno, alice)
    _seed_inbox(alice, bruno, count=1)

    with app.app_context():
        assert notification_service.mark_all_read(bruno) == 3
        assert Notification.query.filter_by(user_id=bruno, read=False).count() == 0
        assert Notification.query.filter_by(user_id=alice, read=False).count() == 1


def test_inbox_routes(client):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    ids = _seed_inbox(bruno, alice)
    login(client, bruno)

    resp = client.get('/api/notifications')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['unread'] == 3
    assert body['items'][0]['fromUser']['name'] == 'Alice'
    assert body['items'][0]['taskName'] == 'Tarefa desconhecida'

    resp = client.post(f'/api/notifications/{ids[1]}/read')
    assert resp.status_code == 200
    assert resp.get_json()['unread'] == 2

    resp = client.get('/api/notifications?unread=1')
    assert len(resp.get_json()['items']) == 2

    resp = client.post('/api/notifications/read-all')
    assert resp.get_json()['updated'] == 2
    assert client.get('/api/notifications/unread-count').get_json()['unread'] == 0


def test_cannot_mark_someone_elses_notification(client):
    alice = create_profile('Alice')
    bruno = create_profile('Bruno')
    ids = _seed_inbox(bruno, alice, count=1)
    login(client, alice)

    resp = client.post(f'/api/notifications/{ids[0]}/read')
    assert resp.status_code == 404
    with app.app_context():
        assert db.session.get(Notification, ids[0]).read is False
