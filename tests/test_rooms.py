import io
import os
import time
from urllib.parse import quote

from conftest import create_profile, login
from fusion import app, db
from fusion.models.tables import Room
from fusion.services import room_service, storage


def _room_payload(**extra):
    payload = {
        'name': 'Sala Aurora',
        'description': 'Consultório amplo com luz natural',
        'neighborhood': 'Meireles',
        'address': 'Rua das Flores, 100',
        'referencePoint': 'Ao lado da praça',
        'size': 18,
        'modalities': ['hourly', 'shift'],
        'specialties': ['psicologia'],
        'amenities': ['wifi'],
        'equipment': ['maca'],
        'images': ['http://files.test/uploads/room-1.jpg'],
        'pricePerHour': 60,
        'pricePerShift': 0,
        'priceFixed': '',
        'host': {'name': 'Joana', 'phone': '(85) 98888-7777'},
    }
    payload.update(extra)
    return payload


class SlowFile:
    def __init__(self, filename, delay):
        self.filename = filename
        self.delay = delay

    def save(self, path):
        time.sleep(self.delay)
        with open(path, 'wb') as handle:
            handle.write(self.filename.encode())


def test_create_room_normalises_prices_and_contacts():
    with app.app_context():
        room = room_service.create_room(_room_payload())
        assert room['pricePerHour'] == 60
        assert room['pricePerShift'] is None
        assert room['priceFixed'] is None
        assert room['manager']['name'] == 'Joana'

        default_host = room_service.create_room(_room_payload(host=None, name='Sala Sol'))
        assert default_host['host']['name'] == 'Fusion Clinic'


def test_update_room_clears_falsy_prices_only_when_present():
    with app.app_context():
        room = room_service.create_room(_room_payload(pricePerShift=150))
        room_service.update_room(room['id'], {'pricePerHour': 0, 'name': 'Sala Aurora II'})
        row = db.session.get(Room, room['id'])
        assert row.price_per_hour is None
        assert row.price_per_shift == 150
        assert row.name == 'Sala Aurora II'


def test_get_rooms_store_filters():
    with app.app_context():
        room_service.create_room(_room_payload())
        room_service.create_room(_room_payload(name='Sala Mar', neighborhood='Aldeota', equipment=['mesa']))

        assert len(room_service.get_rooms({'neighborhood': 'Todos'})) == 2
        assert [r['name'] for r in room_service.get_rooms({'neighborhood': 'Aldeota'})] == ['Sala Mar']
        assert [r['name'] for r in room_service.get_rooms({'equipment': 'maca'})] == ['Sala Aurora']
        assert room_service.get_locations() == ['Aldeota', 'Meireles']
        assert room_service.get_available_equipments() == ['maca', 'mesa']


def test_parallel_uploads_return_in_completion_order():
    files = [SlowFile('lenta.jpg', 0.4), SlowFile('rapida.jpg', 0.0)]
    with app.app_context():
        urls = room_service.upload_room_images(files)

    assert len(urls) == 2
    assert all(url.startswith('http://files.test/uploads/room-') for url in urls)
    folder = app.config['UPLOAD_FOLDER']
    contents = [open(os.path.join(folder, url.rsplit('/', 1)[1]), 'rb').read() for url in urls]
    assert contents == [b'rapida.jpg', b'lenta.jpg']


def test_random_name_keeps_only_the_extension():
    name = storage.random_name('Foto da Sala.PNG', prefix='room-')
    assert name.startswith('room-')
    assert name.endswith('.png')
    assert 'Foto' not in name


def test_room_routes_validate_and_filter(client):
    login(client, create_profile('Alice'))

    resp = client.post('/api/rooms', json=_room_payload(images=[], name='Sa'))
    assert resp.status_code == 400
    fields = resp.get_json()['fields']
    assert 'images' in fields and 'name' in fields

    resp = client.post('/api/rooms', json=_room_payload())
    assert resp.status_code == 201
    room_id = resp.get_json()['id']

    resp = client.get('/api/rooms?q=maca&minPrice=50&maxPrice=80')
    rooms = resp.get_json()
    assert [r['id'] for r in rooms] == [room_id]
    assert rooms[0]['priceLabel'] == 'R$ 60/h'

    resp = client.patch(f'/api/rooms/{room_id}', json={'pricePerHour': None})
    assert resp.get_json()['pricePerHour'] is None

    assert client.delete(f'/api/rooms/{room_id}').status_code == 204
    assert client.get(f'/api/rooms/{room_id}').status_code == 404


def test_upload_route(client):
    login(client, create_profile('Alice'))
    resp = client.post(
        '/api/uploads',
        data={'file': (io.BytesIO(b'audio-bytes'), 'nota.webm')},
        content_type='multipart/form-data',
    )
    assert resp.status_code == 201
    name = resp.get_json()['url'].rsplit('/', 1)[1]
    assert name.endswith('.webm')

    served = client.get(f'/uploads/{name}')
    assert served.status_code == 200
    assert served.data == b'audio-bytes'


def test_share_page_is_public_and_links_to_whatsapp(client):
    with app.app_context():
        room = room_service.create_room(_room_payload(manager={'name': 'Rita', 'phone': '85 97777-6666'}))

    resp = client.get(f"/share/room/{room['id']}")
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'Sala Aurora' in html
    assert 'Ao lado da praça' in html
    assert 'R$ 60' in html
    message = quote('Olá, vi a sala Sala Aurora no Fusion e gostaria de mais informações.')
    assert f'https://wa.me/5585977776666?text={message}' in html

    assert client.get('/share/room/unknown').status_code == 404


def test_share_link_route(client):
    login(client, create_profile('Alice'))
    with app.app_context():
        room = room_service.create_room(_room_payload())

    body = client.get(f"/api/rooms/{room['id']}/share-link").get_json()
    assert body['url'].endswith(f"/share/room/{room['id']}")
    assert 'Sala Aurora' in body['text']
    assert body['whatsappUrl'].startswith('https://wa.me/?text=')


def test_room_edit_keeps_registration_rules(client):
    login(client, create_profile('Alice'))
    room_id = client.post('/api/rooms', json=_room_payload()).get_json()['id']

    resp = client.patch(f'/api/rooms/{room_id}', json={
        'name': 'X',
        'size': -5,
        'modalities': [],
        'specialties': [],
        'host': {'name': 'J', 'phone': '1'},
    })
    assert resp.status_code == 400
    assert {'name', 'size', 'modalities', 'specialties', 'hostName', 'hostPhone'} <= set(resp.get_json()['fields'])

    with app.app_context():
        stored = db.session.get(Room, room_id)
        assert stored.name == 'Sala Aurora'
        assert stored.size == 18
        assert stored.modalities == ['hourly', 'shift']

    resp = client.patch(f'/api/rooms/{room_id}', json={'host': {'phone': '(85) 97777-6666'}})
    assert resp.status_code == 200
    host = resp.get_json()['host']
    assert (host['name'], host['phone']) == ('Joana', '(85) 97777-6666')
