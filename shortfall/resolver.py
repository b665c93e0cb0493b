"""Break an underwater account down into supplied and borrowed positions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from shortfall.markets import MarketCatalog, UnderlyingInfo
from utils.formatting import format_balance
from utils.logging import get_logger

logger = get_logger("shortfall.resolver")


class ResolveError(Exception):
    """A balance for one of the account's markets could not be read."""


class PositionKind(Enum):
    SUPPLY = "supply"
    BORROW = "borrow"


@dataclass(frozen=True)
class Position:
    market: str
    kind: PositionKind
    amount: int
    underlying: UnderlyingInfo

    def describe(self, account: str) -> str:
        balance = format_balance(self.amount, self.underlying.decimals)
        if self.kind is PositionKind.BORROW:
            return f"Account {account} has borrowed balance {balance} in {self.underlying.name}"
        return f"Account {account} has balance {balance} in {self.underlying.name}"


@dataclass
class Report:
    account: str
    shortfall: Optional[int] = None
    positions: list[Position] = field(default_factory=list)

    @property
    def supplied(self) -> list[Position]:
        return [p for p in self.positions if p.kind is PositionKind.SUPPLY]

    @property
    def borrowed(self) -> list[Position]:
        return [p for p in self.positions if p.kind is PositionKind.BORROW]

    def lines(self) -> list[str]:
        return [p.describe(self.account) for p in self.positions]


class AssetResolver:
    def __init__(self, catalog: MarketCatalog):
        self.catalog = catalog

    def resolve(self, account: str, markets: list[str], shortfall: Optional[int] = None) -> Report:
        """Query the account's balance in each of its markets.

        In a borrow market a stored borrow balance of zero means the account
        entered the market as a supplier and is left out of the report. This
        mirrors how membership is used, it is not a protocol guarantee.
        """
        report = Report(account=account, shortfall=shortfall)
        for market in markets:
            if not self.catalog.is_listed(market):
                logger.warning("Account %s is in market %s which was not listed at startup", account, market)
                continue

            ctoken = self.catalog.lend_markets[market]
            info = self.catalog.underlying[market]
            if self.catalog.is_borrow_market(market):
                try:
                    borrowed = ctoken.borrow_balance_stored(account)
                except Exception as e:
                    raise ResolveError(f"cannot get borrow balance for account {account} in {market}: {e}") from e
                if borrowed != 0:
                    report.positions.append(Position(market, PositionKind.BORROW, borrowed, info))
            else:
                try:
                    balance = ctoken.balance_of_underlying(account)
                except Exception as e:
                    raise ResolveError(f"cannot get underlying balance for account {account} in {market}: {e}") from e
                report.positions.append(Position(market, PositionKind.SUPPLY, balance, info))
        return report
