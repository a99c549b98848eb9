"""Strategy router - per-song strategy resolution and payment routing."""

from __future__ import annotations

import logging
import time

from royalty_indexer.errors import PaymentRejected, StrategyConfigError
from royalty_indexer.interfaces.store import LedgerStore
from royalty_indexer.interfaces.strategy import EconomicStrategy
from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import PaymentRoute, StrategyConfig
from royalty_indexer.strategy.base import ProtocolFee
from royalty_indexer.strategy.dutch_auction import DutchAuctionStrategy
from royalty_indexer.strategy.dynamic_pricing import DynamicPricingStrategy
from royalty_indexer.strategy.gift_economy import GiftEconomyStrategy
from royalty_indexer.strategy.patronage import PatronageStrategy
from royalty_indexer.strategy.pay_per_stream import PayPerStreamStrategy

log = logging.getLogger(__name__)

DEFAULT_STRATEGIES: dict[str, type] = {
    cls.strategy_id: cls
    for cls in (
        PayPerStreamStrategy,
        PatronageStrategy,
        GiftEconomyStrategy,
        DutchAuctionStrategy,
        DynamicPricingStrategy,
    )
}


class StrategyRouter:
    """Routes gross payments through a protocol fee and the song's strategy.

    Strategy classes are looked up by identifier, so a new variant only
    needs ``register()``. Reconfiguring a song replaces its instance and
    affects future payments only.
    """

    def __init__(
        self,
        fee: ProtocolFee,
        registry: dict[str, type] | None = None,
    ) -> None:
        self.fee = fee
        self._registry: dict[str, type] = dict(registry or DEFAULT_STRATEGIES)
        self._songs: dict[str, EconomicStrategy] = {}
        self._configs: dict[str, StrategyConfig] = {}

    def register(self, strategy_id: str, cls: type) -> None:
        self._registry[strategy_id] = cls

    @property
    def strategy_ids(self) -> list[str]:
        return sorted(self._registry)

    def build(self, config: StrategyConfig) -> EconomicStrategy:
        """Validate a config and build its strategy without installing it."""
        cls = self._registry.get(config.strategy_id)
        if cls is None:
            raise StrategyConfigError(f"unknown strategy {config.strategy_id!r}")
        if not isinstance(config.params, dict):
            raise StrategyConfigError("params must be an object")
        return cls.from_params(config.params)

    def configure_song(self, config: StrategyConfig) -> EconomicStrategy:
        strategy = self.build(config)
        self._songs[config.song_id] = strategy
        self._configs[config.song_id] = config
        log.info("Song %s now uses %s", config.song_id, config.strategy_id)
        return strategy

    def strategy_for(self, song_id: str) -> EconomicStrategy:
        try:
            return self._songs[song_id]
        except KeyError:
            raise PaymentRejected("no_strategy", f"song {song_id} has no strategy") from None

    def config_for(self, song_id: str) -> StrategyConfig | None:
        return self._configs.get(song_id)

    async def load_song(self, store: LedgerStore, song_id: str) -> EconomicStrategy | None:
        """Install the song's stored config unless one is already loaded."""
        if song_id in self._songs:
            return self._songs[song_id]
        config = await store.get_strategy_config(song_id)
        if config is None:
            return None
        return self.configure_song(config)

    def route_payment(
        self,
        song_id: str,
        payer: str,
        gross: int,
        payment_type: PaymentType = PaymentType.STREAM,
        now: int | None = None,
    ) -> PaymentRoute:
        """Validate a payment, apply its state change and return the payout."""
        strategy = self.strategy_for(song_id)
        if now is None:
            now = int(time.time())
        if gross < 0:
            raise PaymentRejected("negative_amount")

        if gross == 0:
            if not strategy.is_authorized(payer, now):
                raise PaymentRejected("unauthorized", f"{payer} may not play {song_id} for free")
            reward = strategy.record_free_play(payer, now)
            return PaymentRoute(
                song_id=song_id, payer=payer, gross=0, protocol_fee=0, net=0,
                treasury=self.fee.treasury, free_play=True, reward=reward,
            )

        minimum = strategy.compute_min_payment(payment_type, now)
        if gross < minimum:
            raise PaymentRejected(
                "below_minimum", f"{gross} below minimum {minimum} for {payment_type.label}",
            )

        route = self._route(song_id, payer, gross, payment_type, strategy)
        strategy.record_payment(payer, gross, payment_type, now)
        return route

    def preview_splits(
        self,
        song_id: str,
        amount: int,
        payment_type: PaymentType = PaymentType.STREAM,
    ) -> PaymentRoute:
        """Fee and splits for ``amount`` without touching strategy state."""
        return self._route(song_id, "", amount, payment_type, self.strategy_for(song_id))

    def _route(
        self,
        song_id: str,
        payer: str,
        gross: int,
        payment_type: PaymentType,
        strategy: EconomicStrategy,
    ) -> PaymentRoute:
        fee = self.fee.compute(gross)
        net = gross - fee
        return PaymentRoute(
            song_id=song_id,
            payer=payer,
            gross=gross,
            protocol_fee=fee,
            net=net,
            treasury=self.fee.treasury,
            splits=strategy.compute_splits(net, payment_type),
        )
