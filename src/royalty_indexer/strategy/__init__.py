"""Economic strategies and the router that applies them."""

from royalty_indexer.strategy.base import ProtocolFee, split_by_basis_points
from royalty_indexer.strategy.dutch_auction import DutchAuctionStrategy
from royalty_indexer.strategy.dynamic_pricing import DynamicPricingStrategy
from royalty_indexer.strategy.gift_economy import GiftEconomyStrategy
from royalty_indexer.strategy.patronage import PatronageStrategy
from royalty_indexer.strategy.pay_per_stream import PayPerStreamStrategy
from royalty_indexer.strategy.router import DEFAULT_STRATEGIES, StrategyRouter

__all__ = [
    "ProtocolFee",
    "split_by_basis_points",
    "DutchAuctionStrategy",
    "DynamicPricingStrategy",
    "GiftEconomyStrategy",
    "PatronageStrategy",
    "PayPerStreamStrategy",
    "DEFAULT_STRATEGIES",
    "StrategyRouter",
]
