"""
Error taxonomy shared by the core services and the web layer.
"""


class WarehouseError(Exception):
    """Base class for errors whose message may be shown to the caller."""


class ValidationError(WarehouseError):
    """Malformed or oversized input, rejected before any side effect."""


class AuthError(WarehouseError):
    """Base class for authentication and authorization failures."""


class OriginError(AuthError):
    def __init__(self, message: str = "Invalid request origin."):
        super().__init__(message)


class NotLoggedInError(AuthError):
    def __init__(self, message: str = "You need to be logged in to perform this operation."):
        super().__init__(message)


class PermissionDeniedError(AuthError):
    def __init__(self, message: str = "Only administrators may perform this operation."):
        super().__init__(message)


class DuplicateKeyError(WarehouseError):
    """A unique constraint of the store was violated."""


class NotFoundError(WarehouseError):
    pass


class SiteError(WarehouseError):
    """An external catalog site rejected or failed a request."""


class DownloadDaemonError(WarehouseError):
    """The download daemon RPC failed."""


class SizeLimitError(WarehouseError):
    """A release exceeds the configured size ceiling."""


class AlreadyQueuedError(WarehouseError):
    def __init__(self, message: str = "This torrent had already been added."):
        super().__init__(message)


class ConfigurationError(WarehouseError):
    pass
