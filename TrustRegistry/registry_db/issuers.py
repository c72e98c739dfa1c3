import logging
from typing import Optional

import redis

from TrustRegistry.registry_shared import address, config, errors
from TrustRegistry.registry_shared.types import IssuerRecord, IssuerRegistered, IssuerStatusUpdated
from TrustRegistry.registry_db.events import EventLog
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


class IssuerDirectory:
    """Issuer records, one per authority key, managed by the registry admin."""

    def __init__(self, client: redis.Redis, registry: RegistryState, events: EventLog,
                 clock: Clock = unix_now, program_id: Optional[bytes] = None):
        self.db: redis.Redis = client
        self.registry = registry
        self.events = events
        self.clock = clock
        self.program_id = program_id

    def issuer_key(self, authority: bytes) -> tuple[str, int]:
        addr, bump = address.issuer_address(authority, self.program_id)
        return record_key(addr), bump

    def _validate_name(self, name: str) -> None:
        try:
            length = len(name.encode("utf-8"))
        except UnicodeEncodeError:
            raise errors.InvalidNameError(len(name))
        if length == 0 or length > config.MAX_NAME_LEN:
            raise errors.InvalidNameError(length)

    def _validate_details(self, details: str) -> None:
        try:
            length = len(details.encode("utf-8"))
        except UnicodeEncodeError:
            raise errors.InvalidDetailsError(len(details))
        if length > config.MAX_DETAILS_LEN:
            raise errors.InvalidDetailsError(length)

    def _serialize_record(self, authority: bytes, name: str, details: str,
                          registration_date: int, bump: int) -> dict:
        return {
            "authority": authority,
            "name": name,
            "details": details,
            "active": encode_bool(True),
            "registration_date": str(registration_date),
            "total_issued": "0",
            "bump": str(bump),
        }

    def _deserialize_record(self, data: dict[bytes, bytes]) -> IssuerRecord:
        return IssuerRecord(
            authority=data[b"authority"],
            name=data[b"name"].decode(),
            details=data[b"details"].decode(),
            active=decode_bool(data[b"active"]),
            registration_date=int(data[b"registration_date"]),
            total_issued=int(data[b"total_issued"]),
            bump=int(data[b"bump"]),
        )

    def load(self, reader, authority: bytes) -> Optional[IssuerRecord]:
        key, _bump = self.issuer_key(authority)
        data = reader.hgetall(key)
        if not data:
            return None
        return self._deserialize_record(data)

    # ─── Admin Operations ───

    def register_issuer(self, admin_signer: bytes, authority: bytes,
                        name: str, details: str) -> IssuerRecord:
        validate_public_key(authority, "authority")
        key, bump = self.issuer_key(authority)

        def body(pipe):
            registry = self.registry.load(pipe)
            self.registry.require_admin(registry, admin_signer, "register_issuer")
            self._validate_name(name)
            self._validate_details(details)

            if pipe.exists(key):
                raise errors.AlreadyExistsError("Issuer", authority.hex())

            now = self.clock()
            pipe.multi()
            pipe.hset(key, mapping=self._serialize_record(authority, name, details, now, bump))
            self.registry.queue_increment(pipe, "total_issuers")
            self.events.append(pipe, IssuerRegistered(issuer=authority, name=name, timestamp=now))

            return IssuerRecord(
                authority=authority,
                name=name,
                details=details,
                active=True,
                registration_date=now,
                total_issued=0,
                bump=bump,
            )

        try:
            record = run_atomic(self.db, [key], body, "register_issuer")
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("register_issuer")

        logger.info("issuer registered: %s (%s)", authority.hex(), name)
        return record

    def update_issuer_status(self, admin_signer: bytes, authority: bytes, active: bool) -> IssuerRecord:
        validate_public_key(authority, "authority")
        key, _bump = self.issuer_key(authority)

        def body(pipe):
            registry = self.registry.load(pipe)
            self.registry.require_admin(registry, admin_signer, "update_issuer_status")

            issuer = self.load(pipe, authority)
            if issuer is None:
                raise errors.NotFoundError("Issuer", authority.hex())

            pipe.multi()
            pipe.hset(key, "active", encode_bool(active))
            self.events.append(pipe, IssuerStatusUpdated(issuer=issuer.authority, active=active))

            issuer.active = active
            return issuer

        try:
            record = run_atomic(self.db, [key], body, "update_issuer_status")
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("update_issuer_status")

        logger.info("issuer %s active=%s", authority.hex(), active)
        return record

    # ─── Query Operations ───

    def get_issuer(self, authority: bytes) -> IssuerRecord:
        validate_public_key(authority, "authority")
        try:
            issuer = self.load(self.db, authority)
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("get_issuer")

        if issuer is None:
            raise errors.NotFoundError("Issuer", authority.hex())
        return issuer
