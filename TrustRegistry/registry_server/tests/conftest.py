import pytest
import fakeredis

from TrustRegistry.registry_db.ledger import TrustRegistry
from TrustRegistry.registry_db.tests.conftest import FakeClock, T0
from TrustRegistry.registry_server import db
from TrustRegistry.registry_shared.signing import Identity, encode_b64


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _inject_ledger(clock):
    """Inject a fakeredis-backed ledger into the db module so the API uses it."""
    r = fakeredis.FakeRedis()
    db.ledger = TrustRegistry(r, clock=clock)
    yield db.ledger
    db.ledger = None
    r.flushdb()
    r.close()


@pytest.fixture
def admin():
    return Identity.generate()


@pytest.fixture
def issuer():
    return Identity.generate()


@pytest.fixture
def recipient():
    return Identity.generate()


def signed(identity: Identity, operation: str, timestamp: int = T0, **fields) -> dict:
    """Helper: build a request body signed by `identity`.

    Every field of the request model must be given, defaults included,
    since the server signs over the full parsed body.
    """
    params = dict(fields, timestamp=timestamp)
    signature = identity.sign(operation, params)
    return dict(params, signer_b64=encode_b64(identity.public_key),
                signature_b64=encode_b64(signature))
