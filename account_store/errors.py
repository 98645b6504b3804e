"""Infrastructure failures raised by account store backends."""


class AccountStoreError(Exception):
    """Base class for unexpected account store failures."""


class RecordDecodeError(AccountStoreError):
    """Raised when a stored record is missing attributes or holds malformed values."""


class OperationTimeoutError(AccountStoreError, TimeoutError):
    """Raised when a backend call does not complete within the configured bound."""
