"""
Utility modules for the rewards service.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    internal_error
)
from .exceptions import (
    RewardsError,
    InvalidInputError,
    InvalidQuarterError,
    NotFoundError,
    CustomerNotFoundError,
    TierNotFoundError,
    RewardNotFoundError,
    AlreadyProcessedError,
    NothingToProcessError,
    InsufficientFundsError,
    UnauthorizedError,
    MissingActorError,
    PersistenceError
)
