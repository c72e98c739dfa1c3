import os
import pytest
import fakeredis

from TrustRegistry.registry_db.ledger import TrustRegistry


T0 = 1_700_000_000


class FakeClock:
    """Settable unix-seconds clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def client():
    r = fakeredis.FakeRedis()
    yield r
    r.flushdb()
    r.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(client, clock):
    return TrustRegistry(client, clock=clock)


@pytest.fixture
def admin():
    return os.urandom(32)


@pytest.fixture
def issuer():
    return os.urandom(32)


@pytest.fixture
def recipient():
    return os.urandom(32)


@pytest.fixture
def initialized(ledger, admin):
    ledger.initialize(admin)
    return admin


@pytest.fixture
def registered_issuer(ledger, initialized, issuer):
    ledger.register_issuer(initialized, issuer, "Acme U", "Accredited university")
    return issuer


@pytest.fixture
def sample_certificate(ledger, registered_issuer, recipient):
    return {
        "issuer_signer": registered_issuer,
        "certificate_id": "CERT-001",
        "recipient": recipient,
        "metadata_uri": "ipfs://QmTest123",
        "expiry_date": 0,
    }
