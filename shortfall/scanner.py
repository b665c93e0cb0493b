from shortfall.borrowers import Borrower
from shortfall.contracts import GET_ACCOUNT_LIQUIDITY
from shortfall.multicall import BatchCaller
from utils.logging import get_logger

logger = get_logger("shortfall.scanner")

# getAccountLiquidity returns (error, liquidity, shortfall)
LIQUIDITY_ERROR_FIELD = 0


def is_underwater(liquidity: int, shortfall: int) -> bool:
    # The comptroller zeroes one side, but compare both in case that ever changes
    return liquidity < shortfall


def rank_by_shortfall(borrowers: list[Borrower]) -> list[Borrower]:
    """Worst accounts first; equal shortfalls keep their input order."""
    return sorted(borrowers, key=lambda b: b.shortfall, reverse=True)


class ShortfallScanner:
    def __init__(self, batch_caller: BatchCaller, comptroller_address: str):
        self.batch_caller = batch_caller
        self.comptroller_address = comptroller_address

    def scan(self, borrowers: list[Borrower]) -> list[Borrower]:
        """Return the underwater accounts among `borrowers`, ranked by shortfall.

        An empty input means the cache is not primed yet; no calls are made.
        Accounts whose liquidity check reports an in-band error are skipped.
        """
        if not borrowers:
            return []

        results = self.batch_caller.execute(
            GET_ACCOUNT_LIQUIDITY,
            [(self.comptroller_address, (borrower.address,)) for borrower in borrowers],
            error_field=LIQUIDITY_ERROR_FIELD,
        )

        underwater = []
        for borrower, result in zip(borrowers, results):
            if not result.ok:
                logger.warning("Contract error %d while getting account %s liquidity", result.error, borrower.address)
                continue
            liquidity, shortfall = result.value
            if is_underwater(liquidity, shortfall):
                underwater.append(Borrower(address=borrower.address, markets=list(borrower.markets), shortfall=shortfall))

        logger.info("%d of %d accounts are underwater", len(underwater), len(borrowers))
        return rank_by_shortfall(underwater)
