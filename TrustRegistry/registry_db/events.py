"""
Append-only event log on a Redis stream.

Events are queued with XADD inside the same MULTI/EXEC as the state change
that produced them, so a rolled-back or aborted operation never leaves an
event behind. Readers (indexers, UIs) page through the stream by id.
"""

import dataclasses
import re
from typing import Union

import redis

from TrustRegistry.registry_shared import config, errors
from TrustRegistry.registry_shared.types import (
    RegistryInitialized,
    IssuerRegistered,
    IssuerStatusUpdated,
    CertificateIssued,
    CertificateRevoked,
)
from TrustRegistry.registry_db.store import REDIS_UNAVAILABLE, encode_bool, decode_bool

Event = Union[RegistryInitialized, IssuerRegistered, IssuerStatusUpdated,
              CertificateIssued, CertificateRevoked]

# "<ms>" or "<ms>-<seq>", the forms XREAD accepts as a start id
_STREAM_ID = re.compile(r"[0-9]+(-[0-9]+)?")

EVENT_TYPES = {
    cls.__name__: cls
    for cls in (RegistryInitialized, IssuerRegistered, IssuerStatusUpdated,
                CertificateIssued, CertificateRevoked)
}


class EventLog:
    def __init__(self, client: redis.Redis):
        self.db: redis.Redis = client

    def _serialize_event(self, event: Event) -> dict:
        mapping = {"type": type(event).__name__}
        for field in dataclasses.fields(event):
            value = getattr(event, field.name)
            if isinstance(value, bool):
                mapping[field.name] = encode_bool(value)
            elif isinstance(value, int):
                mapping[field.name] = str(value)
            else:
                mapping[field.name] = value
        return mapping

    def _deserialize_event(self, data: dict[bytes, bytes]) -> Event:
        cls = EVENT_TYPES[data[b"type"].decode()]
        kwargs = {}
        for field in dataclasses.fields(cls):
            raw = data[field.name.encode()]
            if field.type is bytes:
                kwargs[field.name] = raw
            elif field.type is bool:
                kwargs[field.name] = decode_bool(raw)
            elif field.type is int:
                kwargs[field.name] = int(raw)
            else:
                kwargs[field.name] = raw.decode()
        return cls(**kwargs)

    def append(self, pipe: redis.client.Pipeline, event: Event) -> None:
        """Queue an event on a pipeline that is already in MULTI mode."""
        pipe.xadd(config.EVENT_STREAM_KEY, self._serialize_event(event))

    def read(self, after: str = "0-0", count: int = config.EVENT_READ_BATCH) -> list[tuple[str, Event]]:
        """Return up to `count` events with stream ids strictly after `after`."""
        if not _STREAM_ID.fullmatch(after):
            raise errors.InvalidCursorError(after)
        try:
            response = self.db.xread({config.EVENT_STREAM_KEY: after}, count=count)
            if not response:
                return []

            _stream, entries = response[0]
            return [
                (entry_id.decode(), self._deserialize_event(fields))
                for entry_id, fields in entries
            ]
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("read_events")
        except redis.exceptions.ResponseError:
            # well-formed but out of range, e.g. a sequence past 2^64
            raise errors.InvalidCursorError(after)

    def count(self) -> int:
        try:
            return self.db.xlen(config.EVENT_STREAM_KEY)
        except REDIS_UNAVAILABLE:
            raise errors.RegistryUnavailableError("count_events")
