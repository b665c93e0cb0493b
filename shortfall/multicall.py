"""Pack many read-only contract calls into a single Multicall aggregate.

Results are positional: result[i] always answers call[i]. Nothing here
reorders, drops or merges entries, and a batch that cannot be matched back
to its calls is rejected as a whole.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from eth_utils import to_checksum_address

from shortfall.contracts import ABI_MULTICALL, ContractMethod
from utils.logging import get_logger
from utils.web3_wrapper import Web3Client

logger = get_logger("shortfall.multicall")


class BatchError(Exception):
    """The aggregate call failed or returned results that cannot be matched to calls."""


@dataclass(frozen=True)
class BatchCall:
    target: str
    data: bytes


@dataclass(frozen=True)
class CallResult:
    """Decoded outcome of one batch entry.

    Some contracts report failure in-band, returning an error code next to the
    requested values instead of reverting. `error` holds that code and `value`
    the remaining outputs; `error == 0` means the entry is usable.
    """

    value: tuple = ()
    error: int = 0

    @property
    def ok(self) -> bool:
        return self.error == 0


def decode_result(method: ContractMethod, data: bytes, error_field: Optional[int] = None) -> CallResult:
    values = method.decode(data)
    if error_field is None:
        return CallResult(value=values)
    error = int(values[error_field])
    rest = values[:error_field] + values[error_field + 1 :]
    return CallResult(value=rest, error=error)


class BatchCaller:
    def __init__(self, client: Web3Client, multicall_address: str, chunk_size: int = 0):
        self.client = client
        self.address = to_checksum_address(multicall_address)
        self.contract = client.get_contract(self.address, ABI_MULTICALL)
        self.chunk_size = chunk_size

    def _aggregate_once(self, calls: Sequence[BatchCall]) -> list[bytes]:
        payload = [(call.target, call.data) for call in calls]
        try:
            _, return_data = self.client.execute(self.contract.functions.aggregate(payload).call)
        except Exception as e:
            raise BatchError(f"aggregate of {len(calls)} calls failed: {e}") from e
        if len(return_data) != len(calls):
            raise BatchError(f"Expected {len(calls)} responses from aggregate, got: {len(return_data)}")
        return [bytes(data) for data in return_data]

    def aggregate(self, calls: Sequence[BatchCall]) -> list[bytes]:
        """Execute `calls` and return their raw results in input order."""
        if not calls:
            return []
        if not self.chunk_size or len(calls) <= self.chunk_size:
            return self._aggregate_once(calls)

        results: list[bytes] = []
        for start in range(0, len(calls), self.chunk_size):
            chunk = calls[start : start + self.chunk_size]
            logger.debug("Aggregating calls %d-%d of %d", start, start + len(chunk), len(calls))
            results.extend(self._aggregate_once(chunk))
        return results

    def execute(
        self,
        method: ContractMethod,
        requests: Iterable[tuple[str, Sequence[Any]]],
        error_field: Optional[int] = None,
    ) -> list[CallResult]:
        """Encode (target, args) requests for `method`, aggregate and decode them."""
        calls = [BatchCall(target=to_checksum_address(target), data=method.encode(*args)) for target, args in requests]
        return [decode_result(method, data, error_field) for data in self.aggregate(calls)]
