class PantryError(Exception):
    """Base class for every error raised by the pantry core."""


class ConfigError(PantryError):
    pass


class ValidationError(PantryError, ValueError):
    pass


class SerializationError(PantryError):
    pass


# =========================================================
# STORE
# =========================================================

class StoreError(PantryError):
    pass


class ConnectivityError(StoreError):
    """The backing store could not be reached (network, auth, quota)."""


class ConflictError(StoreError):
    """A compare-and-set write found the record changed since it was read."""


class NotFoundError(StoreError):
    pass


class AlreadyExistsError(StoreError):
    pass
