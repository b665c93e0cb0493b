"""Tests for shortfall/config.py and duration parsing."""

import os
import unittest
from unittest.mock import patch

from web3 import Web3

from shortfall.config import ScannerConfig
from utils.chains import Chain
from utils.config import Config, ConfigError, parse_duration

COMPTROLLER = "0xfbe0f3a3d1405257bd69691406eb1fb88b8b5c6d"
MULTICALL = "0x275617327c958bd06b5d6b871e7f491d76113dd8"

BASE_ENV = {
    "COMPTROLLER_ADDRESS": COMPTROLLER,
    "MULTICALL_ADDRESS": MULTICALL,
    "BORROWER_CACHE_INTERVAL": "5m",
}


class TestParseDuration(unittest.TestCase):
    def test_units(self):
        self.assertEqual(parse_duration("30s"), 30.0)
        self.assertEqual(parse_duration("5m"), 300.0)
        self.assertEqual(parse_duration("1h30m"), 5400.0)
        self.assertEqual(parse_duration("1.5h"), 5400.0)
        self.assertEqual(parse_duration("250ms"), 0.25)

    def test_bare_number_is_seconds(self):
        self.assertEqual(parse_duration("45"), 45.0)

    def test_invalid(self):
        for value in ("", "abc", "5x", "m5", "10s junk", "0s", "-3", "inf", "infinity", "nan", "-inf", "1e300"):
            with self.subTest(value=value):
                with self.assertRaises(ConfigError):
                    parse_duration(value)


class TestConfigHelpers(unittest.TestCase):
    def test_require_env(self):
        with patch.dict(os.environ, {"PRESENT": "x", "BLANK": "  "}, clear=True):
            self.assertEqual(Config.require_env("PRESENT"), "x")
            with self.assertRaises(ConfigError):
                Config.require_env("BLANK")
            with self.assertRaises(ConfigError):
                Config.require_env("MISSING")

    def test_get_env_duration(self):
        with patch.dict(os.environ, {"INTERVAL": "2m", "BROKEN": "soon"}, clear=True):
            self.assertEqual(Config.get_env_duration("INTERVAL"), 120.0)
            self.assertEqual(Config.get_env_duration("MISSING", "10s"), 10.0)
            with self.assertRaises(ConfigError):
                Config.get_env_duration("BROKEN", "10s")
            with self.assertRaises(ConfigError):
                Config.get_env_duration("MISSING")


class TestScannerConfig(unittest.TestCase):
    def test_from_env_defaults(self):
        with patch.dict(os.environ, BASE_ENV, clear=True):
            config = ScannerConfig.from_env()

        self.assertEqual(config.chain, Chain.POLYGON)
        self.assertEqual(config.comptroller_address, Web3.to_checksum_address(COMPTROLLER))
        self.assertEqual(config.multicall_address, Web3.to_checksum_address(MULTICALL))
        self.assertEqual(config.borrower_cache_interval, 300.0)
        self.assertEqual(config.scan_trigger, "blocks")
        self.assertEqual(config.scan_interval, 60.0)
        self.assertEqual(config.block_poll_interval, 2.0)
        self.assertEqual(config.multicall_chunk_size, 0)
        self.assertEqual(config.explorer_url, "https://polygonscan.com")
        self.assertFalse(config.enable_notifications)
        self.assertEqual(config.critical_shortfall, 0)

    def test_from_env_overrides(self):
        env = dict(
            BASE_ENV,
            CHAIN="arbitrum",
            SCAN_TRIGGER="timer",
            SCAN_INTERVAL="15s",
            MULTICALL_CHUNK_SIZE="500",
            BLOCKCHAIN_EXPLORER_URL="https://explorer.example/",
            SHORTFALL_ENABLE_NOTIFICATIONS="true",
            SHORTFALL_CRITICAL_THRESHOLD="100000",
        )
        with patch.dict(os.environ, env, clear=True):
            config = ScannerConfig.from_env()

        self.assertEqual(config.chain, Chain.ARBITRUM)
        self.assertEqual(config.scan_trigger, "timer")
        self.assertEqual(config.scan_interval, 15.0)
        self.assertEqual(config.multicall_chunk_size, 500)
        self.assertEqual(config.explorer_url, "https://explorer.example")
        self.assertTrue(config.enable_notifications)
        self.assertEqual(config.critical_shortfall, 100_000)

    def test_invalid_values_are_fatal(self):
        cases = {
            "missing comptroller": {"COMPTROLLER_ADDRESS": ""},
            "bad comptroller": {"COMPTROLLER_ADDRESS": "0x1234"},
            "missing multicall": {"MULTICALL_ADDRESS": ""},
            "missing interval": {"BORROWER_CACHE_INTERVAL": ""},
            "bad interval": {"BORROWER_CACHE_INTERVAL": "often"},
            "infinite interval": {"BORROWER_CACHE_INTERVAL": "inf"},
            "nan scan interval": {"SCAN_INTERVAL": "nan"},
            "bad trigger": {"SCAN_TRIGGER": "mempool"},
            "bad chunk size": {"MULTICALL_CHUNK_SIZE": "-1"},
            "bad chain": {"CHAIN": "solana"},
            "bad critical threshold": {"SHORTFALL_CRITICAL_THRESHOLD": "1e5"},
        }
        for name, overrides in cases.items():
            with self.subTest(name):
                with patch.dict(os.environ, dict(BASE_ENV, **overrides), clear=True):
                    with self.assertRaises(ConfigError):
                        ScannerConfig.from_env()


if __name__ == "__main__":
    unittest.main()
