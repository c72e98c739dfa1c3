from TrustRegistry.registry_db import connection
from TrustRegistry.registry_db.ledger import TrustRegistry
from TrustRegistry.registry_shared.types import HealthStatus

ledger: TrustRegistry = None


def open_ledger(url: str) -> TrustRegistry:
    global ledger
    if ledger is not None:
        return ledger

    ledger = TrustRegistry(connection.create_client(url))
    return ledger


def close_ledger() -> None:
    global ledger
    if ledger is None:
        return
    try:
        connection.close(ledger.db)
    finally:
        ledger = None


def health_check() -> HealthStatus:
    if ledger is None:
        return HealthStatus(connected=False, record_count=0, event_count=0, uptime_seconds=0.0)
    return connection.health_check(ledger.db)
