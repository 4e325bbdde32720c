# zapflow/adapters/price_feed.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from zapflow import conf
from zapflow.adapters.base import SignalAdapter
from zapflow.adapters.models import PriceTriggerConfig
from zapflow.models import RawSignal, TriggerType

logger = logging.getLogger(__name__)

# Ticker symbol → CoinGecko asset id
COIN_IDS: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
    "DOT": "polkadot",
    "LINK": "chainlink",
}


def resolve_asset_id(symbol: str) -> str:
    """Feed-specific id for a symbol; unknown symbols fall back to lower case."""
    return COIN_IDS.get(symbol.upper(), symbol.lower())


class PriceFeedAdapter(SignalAdapter):
    """Samples the latest USD price of a crypto asset."""

    trigger_type = TriggerType.PRICE
    config_model = PriceTriggerConfig

    def __init__(
        self,
        session: requests.Session | None = None,
        api_base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.session = session or requests.Session()
        self.api_base_url = (api_base_url or conf.PRICE_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else conf.PRICE_TIMEOUT_S

    def fetch_price(self, symbol: str) -> Optional[float]:
        """Latest USD price, or None when the feed fails or has no quote."""
        asset_id = resolve_asset_id(symbol)
        try:
            response = self.session.get(
                f"{self.api_base_url}/simple/price",
                params={"ids": asset_id, "vs_currencies": "usd"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            quote = response.json().get(asset_id, {}).get("usd")
            if quote is None:
                return None
            price = float(quote)
        except (requests.RequestException, ValueError, TypeError, AttributeError) as e:
            logger.error("Error fetching price for %s: %s", symbol, e)
            return None

        logger.info("%s: $%s", symbol, price)
        return price

    def scan(
        self,
        config: PriceTriggerConfig,  # type: ignore[override]
        credentials: Optional[Dict[str, Any]] = None,
    ) -> List[RawSignal]:
        price = self.fetch_price(config.symbol)
        if price is None:
            logger.warning("Could not fetch price for %s", config.symbol)
            return []

        now = datetime.now(timezone.utc)
        return [
            RawSignal(
                external_id=f"{config.symbol}@{now.isoformat()}",
                value=price,
                observed_at=now,
                payload={"symbol": config.symbol, "price": price},
            )
        ]
