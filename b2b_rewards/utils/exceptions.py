"""
Custom exceptions for reward and wallet business logic.

Each exception carries an error code and the HTTP status the API layer
renders it with, so services can raise without knowing about Flask.
"""


class RewardsError(Exception):
    """Base exception for all rewards business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "REWARDS_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidInputError(RewardsError):
    """Missing or malformed input (quarter, year, amounts)."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class InvalidQuarterError(InvalidInputError):
    """Quarter outside 1-4."""

    def __init__(self, quarter=None):
        self.quarter = quarter
        super().__init__("Quarter must be between 1 and 4", "quarter")


class NotFoundError(RewardsError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper().replace(' ', '_')}_NOT_FOUND")


class CustomerNotFoundError(NotFoundError):
    """Customer not found."""

    def __init__(self, identifier=None):
        super().__init__("Customer", identifier)


class TierNotFoundError(NotFoundError):
    """Reward tier not found."""

    def __init__(self, identifier=None):
        super().__init__("Reward tier", identifier)


class RewardNotFoundError(NotFoundError):
    """Customer reward row not found."""

    def __init__(self, identifier=None):
        super().__init__("Customer reward", identifier)


class AlreadyProcessedError(RewardsError):
    """Mutation attempted on a locked (processed) reward."""

    def __init__(self, reward_id=None):
        self.reward_id = reward_id
        super().__init__("Cannot modify processed rewards", "ALREADY_PROCESSED")


class NothingToProcessError(RewardsError):
    """No pending rewards exist for the requested quarter."""

    def __init__(self, quarter: int, year: int):
        self.quarter = quarter
        self.year = year
        super().__init__("No pending rewards to process", "NOTHING_TO_PROCESS")


class InsufficientFundsError(RewardsError):
    """Wallet plus available credit does not cover the amount."""

    def __init__(self, required, available):
        self.required = required
        self.available = available
        message = f"Insufficient funds. Required: {required}, Available: {available}"
        super().__init__(message, "INSUFFICIENT_FUNDS")


class UnauthorizedError(RewardsError):
    """No authenticated actor on the request."""

    status_code = 401

    def __init__(self, message: str = "Authentication required", code: str = "AUTH_REQUIRED"):
        super().__init__(message, code)


class MissingActorError(UnauthorizedError):
    """An operation that records who performed it was called without an actor."""

    def __init__(self):
        super().__init__("Unauthorized", "MISSING_ACTOR")


class PersistenceError(RewardsError):
    """Storage failure while settling a single customer."""

    status_code = 500

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, "PERSISTENCE_FAILURE")
