class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class UnauthorizedError(AuthenticationError):
    """Raised when the acting operator cannot be (re-)verified."""


class NotFoundError(DomainError):
    """Raised when a participant or transaction does not exist."""


class InsufficientBalanceError(DomainError):
    """Raised when a student sender cannot cover the requested amount."""

    def __init__(self, balance: int, amount: int):
        super().__init__(f"Insufficient balance: has {balance}, needs {amount}")
        self.balance = balance
        self.amount = amount


class InvalidStateError(DomainError):
    """Raised when an operation does not apply to the current ledger state."""


class StorageError(DomainError):
    """Raised when the store could not complete a unit of work.

    Nothing is left half-written when this is raised, so callers may retry.
    """
