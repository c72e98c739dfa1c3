import os

import pytest

from TrustRegistry.registry_shared import errors
from TrustRegistry.registry_shared.types import RegistryRecord, RegistryInitialized
from TrustRegistry.registry_db.ledger import TrustRegistry


# ── Initialize ──

def test_initialize_sets_admin_and_zero_counters(ledger, admin):
    record = ledger.initialize(admin)
    assert isinstance(record, RegistryRecord)
    assert record.admin == admin
    assert record.total_certificates == 0
    assert record.total_issuers == 0


def test_initialize_persists_record(ledger, admin):
    ledger.initialize(admin)
    stored = ledger.get_registry()
    assert stored.admin == admin
    assert stored.bump == ledger.registry.bump


def test_initialize_twice_raises(ledger, admin):
    ledger.initialize(admin)
    with pytest.raises(errors.AlreadyInitializedError):
        ledger.initialize(os.urandom(32))
    assert ledger.get_registry().admin == admin


def test_initialize_rejects_malformed_key(ledger):
    with pytest.raises(errors.InvalidPublicKeyError):
        ledger.initialize(b"short")
    assert ledger.registry.is_initialized() is False


def test_initialize_emits_event(ledger, admin, clock):
    ledger.initialize(admin)
    events = ledger.read_events()
    assert len(events) == 1
    _id, event = events[0]
    assert event == RegistryInitialized(admin=admin, timestamp=clock.now)


# ── Get ──

def test_get_registry_before_initialize_raises(ledger):
    with pytest.raises(errors.NotInitializedError):
        ledger.get_registry()


def test_is_initialized(ledger, admin):
    assert ledger.registry.is_initialized() is False
    ledger.initialize(admin)
    assert ledger.registry.is_initialized() is True


# ── Deployment isolation ──

def test_separate_program_ids_are_separate_registries(client, admin):
    first = TrustRegistry(client, program_id=b"\x01" * 32)
    second = TrustRegistry(client, program_id=b"\x02" * 32)

    first.initialize(admin)
    with pytest.raises(errors.NotInitializedError):
        second.get_registry()
