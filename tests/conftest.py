import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix='fusion-tests-')

os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['SECRET_KEY'] = 'test-secret'
os.environ['APP_LOG_DIR'] = os.path.join(_tmp_dir, 'logs')
os.environ['UPLOAD_FOLDER'] = os.path.join(_tmp_dir, 'uploads')
os.environ['WTF_CSRF_ENABLED'] = '0'
os.environ['RATELIMIT_ENABLED'] = '0'
os.environ.pop('REDIS_URL', None)

import pytest

from fusion import app, db
from fusion.extensions.cache import cache
from fusion.models.tables import Profile, Team
from fusion.services import change_listener
from fusion.services.boards import board_registry


@pytest.fixture(autouse=True)
def fresh_database():
    app.config['PUBLIC_BASE_URL'] = 'http://files.test'
    with app.app_context():
        db.drop_all()
        db.create_all()
        cache.clear()
    yield
    board_registry.release_all()


@pytest.fixture(autouse=True)
def deferred_reloads(monkeypatch):
    """Board reloads triggered by commits are collected instead of run on the executor."""
    scheduled = []
    monkeypatch.setattr(change_listener, 'submit_io_task', scheduled.append)
    return scheduled


@pytest.fixture
def client():
    return app.test_client()


def create_profile(name, role='membro', team_id=None, email=None, password='secret1'):
    with app.app_context():
        profile = Profile(
            name=name,
            email=email or f'{name.lower().replace(" ", ".")}@fusionclinic.com.br',
            role=role,
            team_id=team_id,
        )
        profile.set_password(password)
        db.session.add(profile)
        db.session.commit()
        return profile.id


def create_team(name='Fisioterapia'):
    with app.app_context():
        team = Team(name=name)
        db.session.add(team)
        db.session.commit()
        return team.id


def login(client, user_id):
    with client.session_transaction() as sess:
        sess['_user_id'] = user_id
        sess['_fresh'] = True
