import os, sys, pytest
# Ensure backend directory is on path so 'seedledger' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from seedledger import create_app, get_db
from seedledger.constants.roles import Role
from seedledger.models import Base  # registers every table


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'LOG_LEVEL': 'DEBUG'})
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def session(app_instance):
    s = get_db()
    yield s
    # leave nothing half-done for the next test
    s.rollback()


@pytest.fixture()
def users(session):
    """One fresh user per role, keyed by role name."""
    from tests.test_utils_seed import ensure_user, unique
    return {r.value: ensure_user(f'{unique(r.value.lower())}@example.com', role=r) for r in Role}


@pytest.fixture()
def actors(users):
    from tests.test_utils_seed import actor_of
    return {name: actor_of(u) for name, u in users.items()}


@pytest.fixture()
def headers(app_instance, users):
    """Authorization headers per role name."""
    from tests.test_utils_seed import jwt_headers
    return {name: jwt_headers(app_instance, u) for name, u in users.items()}
