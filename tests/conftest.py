import pytest
from pollboard import create_app, db
from pollboard.database.models import User


@pytest.fixture
def app(tmp_path):
    """App on a throwaway SQLite file with cheap argon2 settings."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'AUDIT_LOG_DIR': str(tmp_path / 'logs'),
        'RATELIMIT_ENABLED': False,
        'RESET_KEY': None,
        'ARGON2_TIME_COST': 1,
        'ARGON2_MEMORY_COST': 1024,
        'ARGON2_PARALLELISM': 1,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def services(app):
    return app.extensions['pollboard']


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def user_id(app):
    return db.session.query(User).filter_by(username='user1').one().id


def login(client, username, password):
    return client.post('/login?raw=json', data={'username': username, 'password': password})


@pytest.fixture
def admin_client(client):
    resp = login(client, 'admin', 'admin')
    assert resp.status_code == 200
    return client


@pytest.fixture
def user_client(client):
    resp = login(client, 'user1', '123456')
    assert resp.status_code == 200
    return client
