import os, sys, pytest
# Ensure the backend directory is on path so 'bizops' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from bizops import create_app, get_db
from bizops.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import bizops.models.audit  # noqa: F401
import bizops.models.vendor  # noqa: F401
import bizops.models.transaction  # noqa: F401
import bizops.models.invoice  # noqa: F401
import bizops.models.purchase_order  # noqa: F401
import bizops.models.company  # noqa: F401

@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
        'TESTING': True,
        'MAX_LOGO_BYTES': 1024,
    })
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
