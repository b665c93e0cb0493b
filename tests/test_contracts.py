"""Tests for shortfall/contracts.py."""

import unittest

from eth_abi import encode
from eth_utils import keccak

from shortfall.contracts import GET_ACCOUNT_LIQUIDITY, GET_ASSETS_IN, GET_UNDERLYING_PRICE, ContractMethod
from tests.fakes import addr


class TestContractMethod(unittest.TestCase):
    def test_signature_and_selector(self):
        self.assertEqual(GET_ACCOUNT_LIQUIDITY.signature, "getAccountLiquidity(address)")
        self.assertEqual(GET_ACCOUNT_LIQUIDITY.selector, keccak(text="getAccountLiquidity(address)")[:4])
        self.assertEqual(GET_ASSETS_IN.output_types, ("address[]",))

    def test_encode_prefixes_selector(self):
        data = GET_UNDERLYING_PRICE.encode(addr(7))
        self.assertEqual(data[:4], GET_UNDERLYING_PRICE.selector)
        self.assertEqual(data[4:], encode(["address"], [addr(7)]))

    def test_encode_rejects_wrong_arity(self):
        with self.assertRaises(ValueError):
            GET_ASSETS_IN.encode()

    def test_decode_checksums_addresses(self):
        markets = [addr(0xAB), addr(0xCD)]
        (decoded,) = GET_ASSETS_IN.decode(encode(["address[]"], [markets]))
        self.assertEqual(decoded, markets)

    def test_tuple_inputs_are_collapsed(self):
        method = ContractMethod.from_abi(
            [
                {
                    "type": "function",
                    "name": "aggregate",
                    "inputs": [
                        {
                            "type": "tuple[]",
                            "components": [{"type": "address"}, {"type": "bytes"}],
                        }
                    ],
                    "outputs": [{"type": "uint256"}, {"type": "bytes[]"}],
                }
            ],
            "aggregate",
        )
        self.assertEqual(method.signature, "aggregate((address,bytes)[])")


if __name__ == "__main__":
    unittest.main()
