"""Thin wrappers around the comptroller, market and token contracts.

Single reads go through web3 contract objects. Calls that are packed into a
multicall use ContractMethod, which encodes calldata and decodes raw return
data with eth-abi so the batch layer never needs a live node.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from eth_abi import decode, encode
from eth_utils import to_checksum_address
from eth_utils.abi import collapse_if_tuple, function_signature_to_4byte_selector

from utils.abi import find_function, load_abi
from utils.web3_wrapper import Web3Client

ABI_DIR = Path(__file__).parent / "abi"

ABI_COMPTROLLER = load_abi(ABI_DIR / "Comptroller.json")
ABI_CTOKEN = load_abi(ABI_DIR / "CToken.json")
ABI_ERC20 = load_abi(ABI_DIR / "ERC20.json")
ABI_MULTICALL = load_abi(ABI_DIR / "Multicall.json")
ABI_PRICE_ORACLE = load_abi(ABI_DIR / "PriceOracle.json")


def _normalize(type_str: str, value: Any) -> Any:
    if type_str == "address":
        return to_checksum_address(value)
    if type_str == "address[]":
        return [to_checksum_address(v) for v in value]
    return value


@dataclass(frozen=True)
class ContractMethod:
    """Calldata encoder and return data decoder for one contract function."""

    name: str
    input_types: tuple[str, ...]
    output_types: tuple[str, ...]

    @classmethod
    def from_abi(cls, abi: list[dict], name: str) -> "ContractMethod":
        fn_abi = find_function(abi, name)
        return cls(
            name=name,
            input_types=tuple(collapse_if_tuple(i) for i in fn_abi.get("inputs", [])),
            output_types=tuple(collapse_if_tuple(o) for o in fn_abi.get("outputs", [])),
        )

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode(self, *args: Any) -> bytes:
        if len(args) != len(self.input_types):
            raise ValueError(f"{self.signature} expects {len(self.input_types)} arguments, got {len(args)}")
        return self.selector + encode(list(self.input_types), list(args))

    def decode(self, data: bytes) -> tuple:
        values = decode(list(self.output_types), bytes(data))
        return tuple(_normalize(t, v) for t, v in zip(self.output_types, values))


GET_ASSETS_IN = ContractMethod.from_abi(ABI_COMPTROLLER, "getAssetsIn")
GET_ACCOUNT_LIQUIDITY = ContractMethod.from_abi(ABI_COMPTROLLER, "getAccountLiquidity")
CTOKEN_SYMBOL = ContractMethod.from_abi(ABI_CTOKEN, "symbol")
GET_UNDERLYING_PRICE = ContractMethod.from_abi(ABI_PRICE_ORACLE, "getUnderlyingPrice")


class Comptroller:
    def __init__(self, client: Web3Client, address: str):
        self.client = client
        self.address = to_checksum_address(address)
        self.contract = client.get_contract(self.address, ABI_COMPTROLLER)

    def get_all_borrowers(self) -> list[str]:
        borrowers = self.client.execute(self.contract.functions.getAllBorrowers().call)
        return [to_checksum_address(b) for b in borrowers]

    def get_all_markets(self) -> list[str]:
        markets = self.client.execute(self.contract.functions.getAllMarkets().call)
        return [to_checksum_address(m) for m in markets]

    def oracle(self) -> str:
        return to_checksum_address(self.client.execute(self.contract.functions.oracle().call))


class CToken:
    def __init__(self, client: Web3Client, address: str):
        self.client = client
        self.address = to_checksum_address(address)
        self.contract = client.get_contract(self.address, ABI_CTOKEN)

    def total_borrows(self) -> int:
        return int(self.client.execute(self.contract.functions.totalBorrows().call))

    def underlying(self) -> str:
        return to_checksum_address(self.client.execute(self.contract.functions.underlying().call))

    def borrow_balance_stored(self, account: str) -> int:
        fn = self.contract.functions.borrowBalanceStored(to_checksum_address(account))
        return int(self.client.execute(fn.call))

    def balance_of_underlying(self, account: str) -> int:
        # Not a view function: accrues interest first, so it is only ever eth_call'ed
        fn = self.contract.functions.balanceOfUnderlying(to_checksum_address(account))
        return int(self.client.execute(fn.call))


class ERC20:
    def __init__(self, client: Web3Client, address: str):
        self.client = client
        self.address = to_checksum_address(address)
        self.contract = client.get_contract(self.address, ABI_ERC20)

    def name(self) -> str:
        return self.client.execute(self.contract.functions.name().call)

    def decimals(self) -> int:
        return int(self.client.execute(self.contract.functions.decimals().call))