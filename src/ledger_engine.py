import logging
from decimal import Inexact, localcontext
from typing import Dict, Iterable

from models import Transaction, ClientAccount, ProcessingStats, ValidationError
from ledger_state import LedgerState
from transaction_processor import TransactionProcessor
from transaction_reader import read_transactions

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    Replays a transaction log and returns the final account states.
    Transactions are applied strictly in input order, single-threaded.
    """

    def __init__(self):
        self.stats = ProcessingStats()

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        """
        Apply every transaction in order and return accounts keyed by client id.
        The input is consumed in a single forward pass.

        Raises:
            ValidationError: on the first malformed record, or when a balance
                can no longer be represented exactly; no accounts are returned
        """
        state = LedgerState()
        processor = TransactionProcessor(state)
        self.stats = ProcessingStats()

        logger.info("Starting ledger replay")

        with localcontext() as ctx:
            # Balance arithmetic must never round.
            ctx.traps[Inexact] = True
            for transaction in transactions:
                try:
                    result = processor.process_transaction(transaction)
                except Inexact:
                    raise ValidationError(f"{transaction}: balance cannot be represented exactly")
                self.stats.record(result)

        accounts = state.get_all_accounts()
        logger.info(
            f"Ledger replay complete: {self.stats.processed} processed, "
            f"{self.stats.applied} applied, {self.stats.ignored} ignored, "
            f"{len(accounts)} accounts"
        )
        return accounts

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        return self.process(read_transactions(filepath))
