import hashlib
import logging
import time
from typing import Callable, TypeVar

import redis

from TrustRegistry.registry_shared import config, errors

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], int]

# transport failures that mean the substrate is unreachable
REDIS_UNAVAILABLE = (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)


def unix_now() -> int:
    return int(time.time())


def record_key(address: bytes) -> str:
    return f"{config.RECORD_KEY_PREFIX}:{address.hex()}"


def encode_bool(value: bool) -> str:
    return "1" if value else "0"


def decode_bool(raw: bytes) -> bool:
    return raw == b"1"


def run_atomic(client: redis.Redis, watch_keys: list[str],
               body: Callable[[redis.client.Pipeline], T], operation: str) -> T:
    """Run `body` as one optimistic transaction over `watch_keys`.

    `body` reads through the pipeline while it is still in immediate mode,
    raises a registry error to abort, or calls ``pipe.multi()`` and queues
    its writes. The writes commit only if none of the watched keys changed;
    otherwise the whole body is re-run against fresh state.
    """
    for attempt in range(config.OPTIMISTIC_LOCK_RETRIES):
        with client.pipeline(transaction=True) as pipe:
            try:
                pipe.watch(*watch_keys)
                result = body(pipe)
                pipe.execute()
                return result
            except redis.WatchError:
                logger.debug("%s: watched key changed, retry %d", operation, attempt + 1)
                continue

    raise errors.ConcurrencyError(operation)


def validate_public_key(key: bytes, label: str) -> None:
    if not isinstance(key, bytes) or len(key) != config.PUBLIC_KEY_LEN:
        raise errors.InvalidPublicKeyError(label, len(key) if isinstance(key, bytes) else 0)


def claim_request(client: redis.Redis, signer: bytes, signature: bytes, ttl: int) -> bool:
    """Mark a signed request as used. False if it was already claimed."""
    digest = hashlib.sha256(signer + signature).hexdigest()
    try:
        return bool(client.set(f"{config.REQUEST_KEY_PREFIX}:{digest}", b"1", nx=True, ex=ttl))
    except REDIS_UNAVAILABLE:
        raise errors.RegistryUnavailableError("claim_request")
