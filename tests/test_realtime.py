import json

from fusion.services.realtime import RealtimeBroadcaster


def test_sse_clients_receive_only_their_scopes():
    broadcaster = RealtimeBroadcaster()
    tasks_client = broadcaster.register_client('u1', {'tasks'})
    all_client = broadcaster.register_client('u2')

    broadcaster.broadcast('INSERT', {'id': 't1'}, scope='tasks')
    broadcaster.broadcast('INSERT', {'id': 'r1'}, scope='rooms')

    assert [e.scope for e in broadcaster.get_events('u1', tasks_client)] == ['tasks']
    assert [e.scope for e in broadcaster.get_events('u2', all_client)] == ['tasks', 'rooms']


def test_targeted_events_reach_only_the_owner():
    broadcaster = RealtimeBroadcaster()
    mine = broadcaster.register_client('u1', {'notifications'})
    theirs = broadcaster.register_client('u2', {'notifications'})

    broadcaster.broadcast('INSERT', {'id': 'n1', 'user_id': 'u1'}, scope='notifications', user_id='u1')

    assert len(broadcaster.get_events('u1', mine)) == 1
    assert broadcaster.get_events('u2', theirs) == []


def test_event_serialises_as_sse():
    broadcaster = RealtimeBroadcaster()
    event = broadcaster.broadcast('UPDATE', {'id': 't1', 'status': 'done'}, scope='tasks')

    text = event.to_sse()
    assert text.startswith(f'id: {event.id}\ndata: ')
    assert text.endswith('\n\n')
    payload = json.loads(text.split('data: ', 1)[1])
    assert payload['type'] == 'UPDATE'
    assert payload['scope'] == 'tasks'
    assert payload['data']['status'] == 'done'


def test_failing_subscriber_does_not_block_others():
    broadcaster = RealtimeBroadcaster()
    received = []

    def broken(event):
        raise RuntimeError('boom')

    broadcaster.subscribe('tasks', broken)
    broadcaster.subscribe('tasks', received.append, event='DELETE')

    broadcaster.broadcast('INSERT', {'id': 't1'}, scope='tasks')
    broadcaster.broadcast('DELETE', {'id': 't1'}, scope='tasks')
    assert [e.event_type for e in received] == ['DELETE']


def test_oldest_connection_is_dropped_past_the_limit():
    broadcaster = RealtimeBroadcaster(max_connections_per_user=2)
    first = broadcaster.register_client('u1')
    broadcaster.register_client('u1')
    broadcaster.register_client('u1')

    assert broadcaster.get_client_count() == 2
    assert broadcaster.wait_for_events('u1', first, timeout=0) is False
