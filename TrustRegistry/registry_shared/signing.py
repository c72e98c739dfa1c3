"""
Signer authentication for registry requests.

Identities are Ed25519 keys (PyNaCl). A request is authenticated by signing
the canonical form of (operation, params); the verified public key becomes
the signer passed to the ledger operations.

Binary values travel as URL-safe base64 so keys can appear in paths.
"""

import base64
import json
from dataclasses import dataclass

import nacl.exceptions
import nacl.signing

from TrustRegistry.registry_shared import config
from TrustRegistry.registry_shared.errors import InvalidPublicKeyError, InvalidSignatureError


ED25519_SIG_SIZE = 64


def encode_b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode()


def decode_b64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text.encode())


def decode_key(text: str, label: str = "public") -> bytes:
    """Decode a base64 public key and check its length."""
    try:
        raw = decode_b64(text)
    except ValueError:
        raise InvalidPublicKeyError(label, 0)
    if len(raw) != config.PUBLIC_KEY_LEN:
        raise InvalidPublicKeyError(label, len(raw))
    return raw


def canonical_message(operation: str, params: dict) -> bytes:
    """Deterministic byte encoding of an operation and its parameters.

    Bytes values are base64-encoded, keys are sorted and separators are
    compact, so both sides produce identical bytes for the same request.
    """
    normalized = {
        k: encode_b64(v) if isinstance(v, bytes) else v
        for k, v in params.items()
    }
    body = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return f"{operation}:{body}".encode("utf-8")


@dataclass
class Identity:
    """An Ed25519 keypair able to sign registry requests."""
    signing_key: nacl.signing.SigningKey

    @classmethod
    def generate(cls) -> "Identity":
        return cls(nacl.signing.SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Identity":
        return cls(nacl.signing.SigningKey(seed))

    @property
    def public_key(self) -> bytes:
        return bytes(self.signing_key.verify_key)

    @property
    def seed(self) -> bytes:
        return bytes(self.signing_key)

    def sign(self, operation: str, params: dict) -> bytes:
        return self.signing_key.sign(canonical_message(operation, params)).signature


def verify_signer(signer: bytes, signature: bytes, operation: str, params: dict) -> bytes:
    """Check `signature` over (operation, params) and return the signer key."""
    if len(signer) != config.PUBLIC_KEY_LEN:
        raise InvalidPublicKeyError("signer", len(signer))
    if len(signature) != ED25519_SIG_SIZE:
        raise InvalidSignatureError(operation)

    try:
        nacl.signing.VerifyKey(signer).verify(canonical_message(operation, params), signature)
    except (nacl.exceptions.BadSignatureError, nacl.exceptions.ValueError, nacl.exceptions.TypeError):
        raise InvalidSignatureError(operation)
    return signer
