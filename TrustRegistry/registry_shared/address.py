"""
Deterministic record addressing.

Every record lives at an address derived from a namespace seed plus key
material, so no lookup index is needed:

    registry     → derive([b"registry"])
    issuer       → derive([b"issuer", authority_key])
    certificate  → derive([b"certificate", certificate_id.encode()])

The address is SHA-256(seeds ‖ bump ‖ program_id ‖ b"ProgramDerivedAddress").
The bump byte is searched from 255 downward until the digest is not a valid
Ed25519 point, which means no private key can ever sign as that address.
"""

import hashlib
from typing import Optional, Sequence

from nacl.bindings import crypto_core_ed25519_is_valid_point

from TrustRegistry.registry_shared import config
from TrustRegistry.registry_shared.errors import AddressDerivationError


def _validate_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > config.MAX_SEEDS:
        raise AddressDerivationError(f"too many seeds ({len(seeds)} > {config.MAX_SEEDS})")
    for seed in seeds:
        if len(seed) > config.MAX_SEED_LEN:
            raise AddressDerivationError(f"seed of {len(seed)} bytes exceeds {config.MAX_SEED_LEN}")


def create_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    """Hash seeds (bump included) into an address; fail if it lands on the curve."""
    _validate_seeds(seeds)

    h = hashlib.sha256()
    for seed in seeds:
        h.update(seed)
    h.update(program_id)
    h.update(config.ADDRESS_MARKER)
    digest = h.digest()

    if crypto_core_ed25519_is_valid_point(digest):
        raise AddressDerivationError("address lies on the ed25519 curve")
    return digest


def derive(namespace: bytes, key_material: Sequence[bytes] = (),
           program_id: Optional[bytes] = None) -> tuple[bytes, int]:
    """Return (address, bump) for a namespace and its key material."""
    if program_id is None:
        program_id = config.PROGRAM_ID
    seeds = [namespace, *key_material]
    # room for the bump seed
    _validate_seeds(seeds + [b"\xff"])

    for bump in range(255, -1, -1):
        try:
            return create_address(seeds + [bytes([bump])], program_id), bump
        except AddressDerivationError:
            continue

    raise AddressDerivationError("no valid bump found")


def registry_address(program_id: Optional[bytes] = None) -> tuple[bytes, int]:
    return derive(config.REGISTRY_SEED, (), program_id)


def issuer_address(authority: bytes, program_id: Optional[bytes] = None) -> tuple[bytes, int]:
    return derive(config.ISSUER_SEED, (authority,), program_id)


def certificate_address(certificate_id: str, program_id: Optional[bytes] = None) -> tuple[bytes, int]:
    return derive(config.CERTIFICATE_SEED, (certificate_id.encode("utf-8"),), program_id)
