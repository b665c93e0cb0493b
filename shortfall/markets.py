"""Startup-time catalog of the comptroller's markets.

Markets are classified once: a market with borrows outstanding at startup is
a borrow market, every listed market is a lend market. The classification is
never refreshed, so markets listed later are unknown to the catalog.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping

from shortfall.contracts import CTOKEN_SYMBOL, ERC20, GET_UNDERLYING_PRICE, Comptroller, CToken
from shortfall.multicall import BatchCall, BatchCaller
from utils.logging import get_logger

logger = get_logger("shortfall.markets")


class MarketLoadError(Exception):
    """A market could not be read during startup."""


@dataclass(frozen=True)
class UnderlyingInfo:
    name: str
    decimals: int


@dataclass(frozen=True)
class MarketCatalog:
    lend_markets: Mapping[str, CToken]
    borrow_markets: frozenset
    underlying: Mapping[str, UnderlyingInfo]

    def is_listed(self, market: str) -> bool:
        return market in self.lend_markets

    def is_borrow_market(self, market: str) -> bool:
        return market in self.borrow_markets

    @classmethod
    def load(
        cls,
        comptroller: Comptroller,
        ctoken_factory: Callable[[str], CToken],
        erc20_factory: Callable[[str], ERC20],
    ) -> "MarketCatalog":
        lend_markets = {}
        borrow_markets = set()
        underlying = {}
        for market in comptroller.get_all_markets():
            ctoken = ctoken_factory(market)
            try:
                if ctoken.total_borrows() > 0:
                    borrow_markets.add(market)
                token = erc20_factory(ctoken.underlying())
                underlying[market] = UnderlyingInfo(name=token.name(), decimals=token.decimals())
            except Exception as e:
                raise MarketLoadError(f"cannot load market {market}: {e}") from e
            lend_markets[market] = ctoken

        logger.info("Loaded %d markets, %d with outstanding borrows", len(lend_markets), len(borrow_markets))
        return cls(
            lend_markets=MappingProxyType(lend_markets),
            borrow_markets=frozenset(borrow_markets),
            underlying=MappingProxyType(underlying),
        )

    def describe(self, batch_caller: BatchCaller, oracle_address: str, explorer_url: str) -> list[str]:
        """Log every market with its symbol and oracle price.

        Symbols and prices are fetched in a single aggregate. Failures are
        logged and yield an empty listing.
        """
        if not self.lend_markets:
            return []

        calls = []
        for market in self.lend_markets:
            calls.append(BatchCall(target=market, data=CTOKEN_SYMBOL.encode()))
            calls.append(BatchCall(target=oracle_address, data=GET_UNDERLYING_PRICE.encode(market)))

        try:
            results = batch_caller.aggregate(calls)
            lines = []
            for i, market in enumerate(self.lend_markets):
                (symbol,) = CTOKEN_SYMBOL.decode(results[2 * i])
                (price,) = GET_UNDERLYING_PRICE.decode(results[2 * i + 1])
                lines.append(f"- {explorer_url}/address/{market} ({symbol})")
                lines.append(f"  Price: {price}")
        except Exception:
            logger.exception("Failed to fetch market symbols and prices")
            return []

        logger.info("MARKETS\n%s", "\n".join(lines))
        return lines
