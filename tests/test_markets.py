"""Tests for shortfall/markets.py."""

import unittest

from eth_abi import encode

from shortfall.contracts import CTOKEN_SYMBOL, GET_UNDERLYING_PRICE
from shortfall.markets import MarketCatalog, MarketLoadError, UnderlyingInfo
from shortfall.multicall import BatchCaller
from tests.fakes import FakeClient, FakeComptroller, FakeCToken, FakeERC20, FakeMulticall, addr

MULTICALL = addr(0xCA11)
ORACLE = addr(0x0AC1E)
COMPTROLLER = addr(0xC0)

USDC_MARKET, WETH_MARKET = addr(0xA1), addr(0xA2)
USDC_TOKEN, WETH_TOKEN = addr(0xE1), addr(0xE2)


class TestMarketCatalog(unittest.TestCase):
    def setUp(self):
        self.ctokens = {
            USDC_MARKET: FakeCToken(USDC_MARKET, total_borrows=10**12, underlying=USDC_TOKEN),
            WETH_MARKET: FakeCToken(WETH_MARKET, total_borrows=0, underlying=WETH_TOKEN),
        }
        self.tokens = {USDC_TOKEN: FakeERC20("USD Coin", 6), WETH_TOKEN: FakeERC20("Wrapped Ether", 18)}
        self.comptroller = FakeComptroller(COMPTROLLER, markets=[USDC_MARKET, WETH_MARKET])

    def load(self):
        return MarketCatalog.load(self.comptroller, self.ctokens.__getitem__, self.tokens.__getitem__)

    def test_classifies_markets_at_startup(self):
        catalog = self.load()

        self.assertEqual(list(catalog.lend_markets), [USDC_MARKET, WETH_MARKET])
        self.assertTrue(catalog.is_borrow_market(USDC_MARKET))
        self.assertFalse(catalog.is_borrow_market(WETH_MARKET))
        self.assertTrue(catalog.is_listed(WETH_MARKET))
        self.assertFalse(catalog.is_listed(addr(0xDEAD)))
        self.assertEqual(catalog.underlying[WETH_MARKET], UnderlyingInfo(name="Wrapped Ether", decimals=18))

    def test_catalog_is_read_only(self):
        catalog = self.load()
        with self.assertRaises(TypeError):
            catalog.lend_markets[addr(0xDEAD)] = None

    def test_unreadable_market_is_fatal(self):
        self.ctokens[WETH_MARKET].error = ConnectionError("execution reverted")
        with self.assertRaises(MarketLoadError):
            self.load()

    def test_describe_lists_symbols_and_prices(self):
        catalog = self.load()
        answers = {
            (USDC_MARKET, CTOKEN_SYMBOL.encode()): encode(["string"], ["cUSDC"]),
            (WETH_MARKET, CTOKEN_SYMBOL.encode()): encode(["string"], ["cWETH"]),
            (ORACLE, GET_UNDERLYING_PRICE.encode(USDC_MARKET)): encode(["uint256"], [10**30]),
            (ORACLE, GET_UNDERLYING_PRICE.encode(WETH_MARKET)): encode(["uint256"], [3000 * 10**18]),
        }
        multicall = FakeMulticall(lambda target, data: answers[(target, data)])
        caller = BatchCaller(FakeClient({MULTICALL: multicall}), MULTICALL)

        lines = catalog.describe(caller, ORACLE, "https://polygonscan.com")

        self.assertEqual(
            lines,
            [
                f"- https://polygonscan.com/address/{USDC_MARKET} (cUSDC)",
                f"  Price: {10**30}",
                f"- https://polygonscan.com/address/{WETH_MARKET} (cWETH)",
                f"  Price: {3000 * 10**18}",
            ],
        )
        self.assertEqual(len(multicall.batches), 1)

    def test_describe_failure_is_not_fatal(self):
        catalog = self.load()
        multicall = FakeMulticall(lambda target, data: b"", fail_with=ConnectionError("node unreachable"))
        caller = BatchCaller(FakeClient({MULTICALL: multicall}), MULTICALL)
        self.assertEqual(catalog.describe(caller, ORACLE, "https://polygonscan.com"), [])


if __name__ == "__main__":
    unittest.main()
