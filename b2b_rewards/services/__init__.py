"""
Business logic services for the rewards platform.
"""
from .reward_calculator import RewardCalculator
from .reward_ledger import RewardLedgerService
from .settlement_processor import RewardSettlementProcessor
from .reward_tier_service import RewardTierService
from .wallet_service import WalletService

__all__ = [
    'RewardCalculator',
    'RewardLedgerService',
    'RewardSettlementProcessor',
    'RewardTierService',
    'WalletService'
]
