class LedgerError(Exception):
    """Base class for rejected ledger operations.

    `kind` is stable and meant for programmatic checks, the message is for humans.
    """

    kind = "LedgerError"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Unauthorized(LedgerError, PermissionError):
    kind = "Unauthorized"


class AlreadyRegistered(LedgerError, ValueError):
    kind = "AlreadyRegistered"


class NotFound(LedgerError, LookupError):
    kind = "NotFound"


class InvalidRecipient(LedgerError, ValueError):
    kind = "InvalidRecipient"
