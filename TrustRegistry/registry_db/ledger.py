"""
TrustRegistry: the full set of registry operations over one Redis client.

Roles:
    admin       → initialize (becomes admin), register_issuer, update_issuer_status,
                  revoke_certificate (any certificate)
    issuer      → issue_certificate (while active), revoke_certificate (own certificates)
    anyone      → verify_certificate and the query helpers

Every `signer` argument is a 32-byte Ed25519 public key that the caller has
already authenticated (see registry_shared.signing).
"""

from typing import Optional

import redis

from TrustRegistry.registry_shared import config
from TrustRegistry.registry_shared.types import (
    CertificateRecord,
    CertificateStatus,
    IssuerRecord,
    RegistryRecord,
)
from TrustRegistry.registry_db.certificates import CertificateLedger, certificate_status
from TrustRegistry.registry_db.events import Event, EventLog
from TrustRegistry.registry_db.issuers import IssuerDirectory
from TrustRegistry.registry_db.registry import RegistryState
from TrustRegistry.registry_db.store import Clock, unix_now


class TrustRegistry:
    def __init__(self, client: redis.Redis, clock: Clock = unix_now,
                 program_id: Optional[bytes] = None):
        self.db: redis.Redis = client
        self.clock = clock
        self.events = EventLog(client)
        self.registry = RegistryState(client, self.events, clock, program_id)
        self.issuers = IssuerDirectory(client, self.registry, self.events, clock, program_id)
        self.certificates = CertificateLedger(
            client, self.registry, self.issuers, self.events, clock, program_id
        )

    # ─── Registry ───

    def initialize(self, caller: bytes) -> RegistryRecord:
        return self.registry.initialize(caller)

    def get_registry(self) -> RegistryRecord:
        return self.registry.get_registry()

    # ─── Issuers ───

    def register_issuer(self, admin_signer: bytes, authority: bytes,
                        name: str, details: str = "") -> IssuerRecord:
        return self.issuers.register_issuer(admin_signer, authority, name, details)

    def update_issuer_status(self, admin_signer: bytes, authority: bytes, active: bool) -> IssuerRecord:
        return self.issuers.update_issuer_status(admin_signer, authority, active)

    def get_issuer(self, authority: bytes) -> IssuerRecord:
        return self.issuers.get_issuer(authority)

    # ─── Certificates ───

    def issue_certificate(self, issuer_signer: bytes, certificate_id: str, recipient: bytes,
                          metadata_uri: str = "", expiry_date: int = config.NO_EXPIRY) -> CertificateRecord:
        return self.certificates.issue_certificate(
            issuer_signer, certificate_id, recipient, metadata_uri, expiry_date
        )

    def revoke_certificate(self, authority_signer: bytes, certificate_id: str) -> CertificateRecord:
        return self.certificates.revoke_certificate(authority_signer, certificate_id)

    def verify_certificate(self, certificate_id: str) -> CertificateRecord:
        return self.certificates.verify_certificate(certificate_id)

    def certificate_status(self, certificate_id: str, now: Optional[int] = None) -> CertificateStatus:
        record = self.certificates.verify_certificate(certificate_id)
        return certificate_status(record, self.clock() if now is None else now)

    def certificates_by_issuer(self, authority: bytes) -> list[str]:
        return self.certificates.certificates_by_issuer(authority)

    def certificates_by_recipient(self, recipient: bytes) -> list[str]:
        return self.certificates.certificates_by_recipient(recipient)

    # ─── Events ───

    def read_events(self, after: str = "0-0", count: int = config.EVENT_READ_BATCH) -> list[tuple[str, Event]]:
        return self.events.read(after, count)
