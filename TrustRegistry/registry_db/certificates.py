import logging
from typing import Optional

import redis

from TrustRegistry.registry_shared import address, config, errors
from TrustRegistry.registry_shared.types import (
    CertificateIssued,
    CertificateRecord,
    CertificateRevoked,
    CertificateStatus,
)
from TrustRegistry.registry_db.events import EventLog
from TrustRegistry.registry_db.issuers import IssuerDirectory
from TrustRegistry.registry_db.registry import RegistryState
from TrustRegistry.registry_db.store import (
    REDIS_UNAVAILABLE,
    Clock,
    decode_bool,
    encode_bool,
    record_key,
    run_atomic,
    unix_now,
    validate_public_key,
)

logger = logging.getLogger(__name__)


def certificate_status(record: CertificateRecord, now: int) -> CertificateStatus:
    """Judge validity at `now`. Expiry and revocation are reported separately."""
    expired = record.expiry_date != config.NO_EXPIRY and now >= record.expiry_date
    return CertificateStatus(
        certificate_id=record.certificate_id,
        revoked=record.revoked,
        expired=expired,
        is_valid=not record.revoked and not expired,
    )


class CertificateLedger:
    def __init__(self, client: redis.Redis, registry: RegistryState, issuers: IssuerDirectory,
                 events: EventLog, clock: Clock = unix_now, program_id: Optional[bytes] = None):
        self.db: redis.Redis = client
        self.registry = registry
        self.issuers = issuers
        self.events = events
        self.clock = clock
        self.program_id = program_id

    def certificate_key(self, certificate_id: str) -> tuple[str, int]:
        addr, bump = address.certificate_address(certificate_id, self.program_id)
        return record_key(addr), bump

    def _issuer_idx_key(self, authority: bytes) -> str:
        return f"{config.ISSUER_IDX_PREFIX}:{authority.hex()}"

    def _recipient_idx_key(self, recipient: bytes) -> str:
        return f"{config.RECIPIENT_IDX_PREFIX}:{recipient.hex()}"

    def _is_valid_certificate_id(self, certificate_id: str) -> bool:
        try:
            length = len(certificate_id.encode("utf-8"))
        except UnicodeEncodeError:
            return False
        return 0 < length <= config.MAX_CERTIFICATE_ID_LEN

    def _validate_certificate_id(self, certificate_id: str) -> None:
        if not self._is_valid_certificate_id(certificate_id):
            raise errors.InvalidCertificateIdError(certificate_id)

    def _require_storable_id(self, certificate_id: str) -> None:
        # no record can exist under an id that issue_certificate rejects
        if not self._is_valid_certificate_id(certificate_id):
            raise errors.NotFoundError("Certificate", ascii(certificate_id))

    def _validate_metadata_uri(self, metadata_uri: str) -> None:
        try:
            length = len(metadata_uri.encode("utf-8"))
        except UnicodeEncodeError:
            raise errors.InvalidMetadataUriError(len(metadata_uri))
        if length > config.MAX_METADATA_URI_LEN:
            raise errors.InvalidMetadataUriError(length)

    def _validate_expiry_date(self, expiry_date: int, now: int) -> None:
        if expiry_date != config.NO_EXPIRY and expiry_date <= now:
            raise errors.InvalidExpiryDateError(expiry_date, now)

    def _serialize_record(self, record: CertificateRecord) -> dict:
        return {
            "certificate_id": record.certificate_id,
            "issuer": record.issuer,
            "recipient": record.recipient,
            "issue_date": str(record.issue_date),
            "expiry_date": str(record.expiry_date),
            "revoked": encode_bool(record.revoked),
            "metadata_uri": record.metadata_uri,
            "bump": str(record.bump),
        }

    def _deserialize_record(self, data: dict[bytes, bytes]) -> CertificateRecord:
        return CertificateRecord(
            certificate_id=data[b"certificate_id"].decode(),
            issuer=data[b"issuer"],
            recipient=data[b"recipient"],
            issue_date=int(data[b"issue_date"]),
            expiry_date=int(data[b"expiry_date"]),
            revoked=decode_bool(data[b"revoked"]),
            metadata_uri=data[b"metadata_uri"].decode(),
            bump=int(data[b"bump"]),
        )

    def _load(self, reader, key: str) -> Optional[CertificateRecord]:
        data = reader.hgetall(key)
        if not data:
            return None
        return self._deserialize_record(data)

    # ─── Write Operations ───

    def issue_certificate(
        self,
        issuer_signer: bytes,
        certificate_id: str,
        recipient: bytes,
        metadata_uri: str = "",
        expiry_date: int = config.NO_EXPIRY,
    ) -> CertificateRecord:
        now = self.clock()
        self._validate_certificate_id(certificate_id)
        self._validate_metadata_uri(metadata_uri)
        self._validate_expiry_date(expiry_date, now)
        validate_public_key(recipient, "recipient")

        if len(issuer_signer) != config.PUBLIC_KEY_LEN:
            raise errors.UnauthorizedIssuerError(issuer_signer.hex())

        cert_key, bump = self.certificate_key(certificate_id)
        issuer_key, _issuer_bump = self.issuers.issuer_key(issuer_signer)

        def body(pipe):
            issuer = self.issuers.load(pipe, issuer_signer)
            if issuer is None or issuer.authority != issuer_signer:
                logger.warning("issue_certificate denied: %s is not a registered issuer", issuer_signer.hex())
                raise errors.UnauthorizedIssuerError(issuer_signer.hex())
            if not issuer.active:
                raise errors.IssuerNotActiveError(issuer.authority.hex())
            if pipe.exists(cert_key):
                raise errors.AlreadyExistsError("Certificate", certificate_id)

            record = CertificateRecord(
                certificate_id=certificate_id,
                issuer=issuer.authority,
                recipient=recipient,
                issue_date=now,
                expiry_date=expiry_date,
                revoked=False,
                metadata_uri=metadata_uri,
                bump=bump,
            )

            pipe.multi()
            pipe.hset(cert_key, mapping=self._serialize_record(record))
            pipe.hincrby(issuer_key, "total_issued", 1)
            self.registry.queue_increment(pipe, "total_certificates")
            pipe.sadd(self._issuer_idx_key(issuer.authority), certificate_id)
            pipe.sadd(self._recipient_idx_key(recipient), certificate_id)
            self.events.append(pipe, CertificateIssued(
                certificate_id=certificate_id,
                issuer=issuer.authority,
                recipient=recipient,
                issue_date=now,
                metadata_uri=metadata_uri,
            ))
            return record

        try:
            record = run_atomic(self.db, [issuer_key, cert_key], body, "issue_certificate")
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("issue_certificate")

        logger.info("certificate %s issued by %s", certificate_id, record.issuer.hex())
        return record

    def revoke_certificate(self, authority_signer: bytes, certificate_id: str) -> CertificateRecord:
        self._require_storable_id(certificate_id)
        cert_key, _bump = self.certificate_key(certificate_id)

        def body(pipe):
            cert = self._load(pipe, cert_key)
            if cert is None:
                raise errors.NotFoundError("Certificate", certificate_id)
            if cert.revoked:
                raise errors.AlreadyRevokedError(certificate_id)

            registry = self.registry.load(pipe)
            if authority_signer != cert.issuer and authority_signer != registry.admin:
                logger.warning("revoke_certificate denied: %s for %s", authority_signer.hex(), certificate_id)
                raise errors.UnauthorizedRevokeError(certificate_id)

            # the stored issuer copy must still match the live issuer record
            issuer = self.issuers.load(pipe, cert.issuer)
            if issuer is None or issuer.authority != cert.issuer:
                logger.warning("revoke_certificate denied: stale issuer for %s", certificate_id)
                raise errors.UnauthorizedRevokeError(certificate_id)

            pipe.multi()
            pipe.hset(cert_key, "revoked", encode_bool(True))
            self.events.append(pipe, CertificateRevoked(
                certificate_id=certificate_id,
                issuer=cert.issuer,
                timestamp=self.clock(),
            ))

            cert.revoked = True
            return cert

        try:
            record = run_atomic(self.db, [cert_key], body, "revoke_certificate")
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("revoke_certificate")

        logger.info("certificate %s revoked by %s", certificate_id, authority_signer.hex())
        return record

    # ─── Read Operations ───

    def verify_certificate(self, certificate_id: str) -> CertificateRecord:
        """Return the stored record. Callers decide validity (see certificate_status)."""
        self._require_storable_id(certificate_id)
        cert_key, _bump = self.certificate_key(certificate_id)
        try:
            cert = self._load(self.db, cert_key)
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("verify_certificate")

        if cert is None:
            raise errors.NotFoundError("Certificate", certificate_id)
        return cert

    def certificates_by_issuer(self, authority: bytes) -> list[str]:
        try:
            members = self.db.smembers(self._issuer_idx_key(authority))
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("certificates_by_issuer")
        return sorted(m.decode() for m in members)

    def certificates_by_recipient(self, recipient: bytes) -> list[str]:
        try:
            members = self.db.smembers(self._recipient_idx_key(recipient))
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("certificates_by_recipient")
        return sorted(m.decode() for m in members)
