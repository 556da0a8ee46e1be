import os, sys, pytest
# Ensure project root is on path so 'invoice_tracker' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from invoice_tracker import create_app, get_db
from invoice_tracker.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import invoice_tracker.models.invoice  # noqa: F401
import invoice_tracker.models.audit  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
        'FUNCTIONS_BASE_URL': 'http://functions.test/functions/v1',
        'FUNCTIONS_API_KEY': 'test-key',
        'RESET_PASSWORD_DEFAULT': 'Temp@12345',
        'TESTING': True,
    })
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance
