import redis
from TrustRegistry.registry_shared import errors, config
from TrustRegistry.registry_shared.types import HealthStatus
from TrustRegistry.registry_db.store import REDIS_UNAVAILABLE


def create_client(url: str = None) -> redis.Redis:
    if url is not None:
        r = redis.Redis.from_url(
            url,
            decode_responses=False,
            socket_connect_timeout=config.REDIS_SOCKET_TIMEOUT,
            socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        )
        target = url
    else:
        r = redis.Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            db=config.REDIS_LEDGER_DB,
            decode_responses=False,
            socket_connect_timeout=config.REDIS_SOCKET_TIMEOUT,
            socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        )
        target = f"{config.REDIS_HOST}:{config.REDIS_PORT}"
    try:
        r.ping()
    except REDIS_UNAVAILABLE:
        raise errors.RegistryUnavailableError(f"Cannot connect to Redis at {target}")
    return r


def health_check(client) -> HealthStatus:
    connected = False
    record_count = 0
    event_count = 0
    uptime = 0.0

    try:
        connected = bool(client.ping())
        record_count = sum(1 for _ in client.scan_iter(match=f"{config.RECORD_KEY_PREFIX}:*", count=100))
        event_count = client.xlen(config.EVENT_STREAM_KEY)
    except REDIS_UNAVAILABLE:
        connected = False

    if connected:
        try:
            uptime = float(client.info().get("uptime_in_seconds", 0))
        except redis.exceptions.ResponseError:
            # INFO may be disabled with rename-command
            uptime = 0.0

    return HealthStatus(
        connected=connected,
        record_count=record_count,
        event_count=event_count,
        uptime_seconds=uptime,
    )


def close(client) -> None:
    client.close()
