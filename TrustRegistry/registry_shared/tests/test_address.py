"""Tests for deterministic record addressing."""

import pytest
from nacl.bindings import crypto_core_ed25519_is_valid_point

from TrustRegistry.registry_shared import address, config
from TrustRegistry.registry_shared.errors import AddressDerivationError


PROGRAM = b"\x11" * 32


# ─── Determinism ───

def test_same_input_same_address():
    assert address.derive(b"issuer", [b"k" * 32], PROGRAM) == address.derive(b"issuer", [b"k" * 32], PROGRAM)


def test_returns_32_byte_address_and_bump():
    addr, bump = address.derive(b"certificate", [b"CERT-001"], PROGRAM)
    assert isinstance(addr, bytes)
    assert len(addr) == 32
    assert 0 <= bump <= 255


def test_default_program_id_from_config():
    assert address.registry_address() == address.derive(config.REGISTRY_SEED, (), config.PROGRAM_ID)


# ─── Uniqueness ───

def test_namespaces_do_not_collide():
    key = b"CERT-001"
    assert address.derive(b"issuer", [key], PROGRAM)[0] != address.derive(b"certificate", [key], PROGRAM)[0]


def test_distinct_keys_do_not_collide():
    addrs = {address.certificate_address(f"CERT-{i}", PROGRAM)[0] for i in range(200)}
    assert len(addrs) == 200


def test_program_id_changes_address():
    assert address.registry_address(b"\x01" * 32) != address.registry_address(b"\x02" * 32)


# ─── Off-curve guarantee ───

def test_derived_address_is_not_a_valid_point():
    for i in range(50):
        addr, _bump = address.issuer_address(bytes([i]) * 32, PROGRAM)
        assert not crypto_core_ed25519_is_valid_point(addr)


def test_bump_is_first_off_curve_candidate():
    seeds = [b"certificate", b"CERT-001"]
    addr, bump = address.derive(seeds[0], seeds[1:], PROGRAM)
    for higher in range(255, bump, -1):
        with pytest.raises(AddressDerivationError):
            address.create_address(seeds + [bytes([higher])], PROGRAM)
    assert address.create_address(seeds + [bytes([bump])], PROGRAM) == addr


# ─── Limits ───

def test_seed_of_64_bytes_is_accepted():
    address.derive(b"certificate", [b"c" * config.MAX_SEED_LEN], PROGRAM)


def test_oversized_seed_raises():
    with pytest.raises(AddressDerivationError):
        address.derive(b"certificate", [b"c" * (config.MAX_SEED_LEN + 1)], PROGRAM)


def test_too_many_seeds_raises():
    with pytest.raises(AddressDerivationError):
        address.derive(b"ns", [b"x"] * config.MAX_SEEDS, PROGRAM)
