import os


def _flag(name, default):
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    # Storage
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/frontdesk.db")

    # Conflicting writers rerun the room transform at most this many times
    TRANSACTION_MAX_RETRIES = int(os.getenv("TRANSACTION_MAX_RETRIES", "25"))

    # Inventory
    TOTAL_ROOMS = int(os.getenv("TOTAL_ROOMS", "40"))
    SEED_ROOMS = _flag("SEED_ROOMS", "true")

    # Reconciliation: also free rooms locked to a booking that is still active
    RECONCILE_RELEASE_FOREIGN_LOCKS = _flag("RECONCILE_RELEASE_FOREIGN_LOCKS", "false")
    # A lock naming a booking that was never written counts as orphaned only
    # once it is older than this; younger ones may be reservations in flight
    ORPHAN_LOCK_GRACE_SECONDS = int(os.getenv("ORPHAN_LOCK_GRACE_SECONDS", "600"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
