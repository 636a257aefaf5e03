"""Custom exception hierarchy for debt-ledger."""


class DebtLedgerError(Exception):
    """Base exception for all debt-ledger errors."""


class ValidationError(DebtLedgerError):
    """Raised when an identifier, filter or argument is missing or malformed."""


class EntityNotFoundError(DebtLedgerError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(DebtLedgerError):
    """Raised when an entity is in an invalid state for the operation."""


class DuplicateDebtorError(InvalidEntityStateError):
    """Raised when a debtor already exists for a (contract, due date) pair."""


class ConfigurationError(DebtLedgerError):
    """Raised when configuration is invalid or missing."""


class InternalError(DebtLedgerError):
    """Raised when persistence or computation fails.

    The message is safe to show to end users; the underlying exception is
    kept on ``cause`` (and chained as ``__cause__``) for logging.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
