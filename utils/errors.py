class ValidationError(ValueError):
    """Bad input, rejected before anything is written."""


class PersistenceError(Exception):
    """The ledger could not complete a read or write."""


class ConcurrentUpdateError(PersistenceError):
    """A conditional write found the record changed since it was read."""


class StaleStateError(Exception):
    """A cached derived date has fallen behind today.

    Only raised and handled inside the payday engine.
    """

    def __init__(self, stale_value: str):
        super().__init__(f"Stored date {stale_value} is in the past")
        self.stale_value = stale_value
