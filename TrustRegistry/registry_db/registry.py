import logging
from typing import Optional

import redis

from TrustRegistry.registry_shared import address, errors
from TrustRegistry.registry_shared.types import RegistryInitialized, RegistryRecord
from TrustRegistry.registry_db.events import EventLog
from TrustRegistry.registry_db.store import (
    REDIS_UNAVAILABLE,
    Clock,
    record_key,
    run_atomic,
    unix_now,
    validate_public_key,
)

logger = logging.getLogger(__name__)


class RegistryState:
    """The singleton registry record: admin key plus global counters."""

    def __init__(self, client: redis.Redis, events: EventLog,
                 clock: Clock = unix_now, program_id: Optional[bytes] = None):
        self.db: redis.Redis = client
        self.events = events
        self.clock = clock
        self.address, self.bump = address.registry_address(program_id)
        self.key = record_key(self.address)

    def _serialize_record(self, admin: bytes) -> dict:
        return {
            "admin": admin,
            "total_certificates": "0",
            "total_issuers": "0",
            "bump": str(self.bump),
        }

    def _deserialize_record(self, data: dict[bytes, bytes]) -> RegistryRecord:
        return RegistryRecord(
            admin=data[b"admin"],
            total_certificates=int(data[b"total_certificates"]),
            total_issuers=int(data[b"total_issuers"]),
            bump=int(data[b"bump"]),
        )

    def load(self, reader) -> RegistryRecord:
        """Read the registry through `reader` (client or watching pipeline)."""
        data = reader.hgetall(self.key)
        if not data:
            raise errors.NotInitializedError()
        return self._deserialize_record(data)

    def require_admin(self, record: RegistryRecord, signer: bytes, operation: str) -> None:
        if signer != record.admin:
            logger.warning("%s denied: signer %s is not admin", operation, signer.hex())
            raise errors.UnauthorizedError(operation)

    def queue_increment(self, pipe: redis.client.Pipeline, counter: str) -> None:
        pipe.hincrby(self.key, counter, 1)

    def initialize(self, caller: bytes) -> RegistryRecord:
        validate_public_key(caller, "admin")

        def body(pipe):
            if pipe.exists(self.key):
                raise errors.AlreadyInitializedError()

            pipe.multi()
            pipe.hset(self.key, mapping=self._serialize_record(caller))
            self.events.append(pipe, RegistryInitialized(admin=caller, timestamp=self.clock()))
            return RegistryRecord(admin=caller, total_certificates=0, total_issuers=0, bump=self.bump)

        try:
            record = run_atomic(self.db, [self.key], body, "initialize")
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("initialize")

        logger.info("registry initialized, admin %s", caller.hex())
        return record

    def get_registry(self) -> RegistryRecord:
        try:
            return self.load(self.db)
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("get_registry")

    def is_initialized(self) -> bool:
        try:
            return bool(self.db.exists(self.key))
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("is_initialized")
