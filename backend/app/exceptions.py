class TranslationEngineError(Exception):
    """Base exception for failures raised while dispatching a single translation cell."""

    pass


class ConfigurationError(TranslationEngineError):
    """Raised when an engine is selected but not provisioned (missing or rejected credentials)."""

    pass


class TransientEngineError(TranslationEngineError):
    """Raised on engine transport failures, timeouts and empty responses."""

    pass


class UnsupportedEngineError(ConfigurationError):
    """Raised when no adapter is registered for the requested engine identifier."""

    pass


class InsufficientTokensError(Exception):
    """Raised when a debit would take a wallet below zero, or the shop has no wallet."""

    def __init__(self, required: int, available: int, shop_id=None):
        self.required = required
        self.available = available
        self.shop_id = shop_id
        super().__init__(f"Insufficient tokens. Required: {required}, Available: {available}")


class LedgerIntegrityError(Exception):
    """Raised when a ledger unit of work fails or leaves a wallet unreconciled."""

    pass


class FatalOrchestrationError(Exception):
    """Base exception for errors that abort a whole translation job."""

    pass


class JobNotFoundError(FatalOrchestrationError):
    """Raised when the job to run does not exist."""

    pass


class ResourceNotFoundError(FatalOrchestrationError):
    """Raised when the job's resource does not exist."""

    pass
