import logging
from typing import Optional

from models import Transaction, TransactionType, ClientAccount, ProcessingResult, ValidationError
from ledger_state import LedgerState

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to ledger state, one at a time, in input order.

    Each handler checks its precondition and either applies the effect
    (APPLIED) or leaves state untouched (IGNORED):

        deposit     always                          available += amount
        withdrawal  available - amount >= 0         available -= amount
        dispute     known deposit, not disputed     available -> held
        resolve     known deposit, disputed         held -> available
        chargeback  known deposit, disputed         held removed, account locked

    A deposit is "known" to a dispute, resolve or chargeback only when it was
    made by the same client. Records for a locked account are always ignored.
    """

    def __init__(self, state: LedgerState):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Raises:
            ValidationError: deposit or withdrawal without an amount
        """
        self.validate(transaction)

        account = self._state.get_or_create_account(transaction.client_id)

        if account.locked:
            logger.debug(f"{transaction}: account {account.client_id} is locked, ignoring")
            return ProcessingResult.IGNORED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(account, transaction)

    @staticmethod
    def validate(transaction: Transaction) -> None:
        if transaction.transaction_type.carries_amount and transaction.amount is None:
            raise ValidationError(
                f"{transaction.transaction_type.value} tx {transaction.transaction_id} has no amount"
            )

    def can_withdraw(self, account: ClientAccount, transaction: Transaction) -> bool:
        return account.available - transaction.amount >= 0

    def can_dispute(self, transaction: Transaction) -> bool:
        return (
            self._find_deposit(transaction) is not None
            and not self._state.is_transaction_disputed(transaction.transaction_id)
        )

    def can_settle(self, transaction: Transaction) -> bool:
        """Precondition shared by resolve and chargeback."""
        return (
            self._find_deposit(transaction) is not None
            and self._state.is_transaction_disputed(transaction.transaction_id)
        )

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        account.credit(transaction.amount)
        if not self._state.store_deposit(transaction):
            logger.info(
                f"Deposit tx {transaction.transaction_id}: id already recorded, "
                f"disputes keep referring to the first deposit"
            )
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if self.can_withdraw(account, transaction):
            account.debit(transaction.amount)
            return ProcessingResult.APPLIED

        logger.info(
            f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
            f"(available {account.available}, requested {transaction.amount})"
        )
        return ProcessingResult.IGNORED

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if self.can_dispute(transaction):
            deposit = self._find_deposit(transaction)
            account.hold(deposit.amount)
            self._state.mark_transaction_disputed(transaction.transaction_id)
            return ProcessingResult.APPLIED

        logger.info(
            f"Dispute for tx {transaction.transaction_id}: "
            f"unknown deposit or already disputed"
        )
        return ProcessingResult.IGNORED

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if self.can_settle(transaction):
            deposit = self._find_deposit(transaction)
            account.release_hold(deposit.amount)
            self._state.clear_transaction_dispute(transaction.transaction_id)
            return ProcessingResult.APPLIED

        logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is not under dispute")
        return ProcessingResult.IGNORED

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if self.can_settle(transaction):
            deposit = self._find_deposit(transaction)
            account.charge_back(deposit.amount)
            self._state.clear_transaction_dispute(transaction.transaction_id)
            logger.info(
                f"Chargeback for tx {transaction.transaction_id}: "
                f"account {account.client_id} locked"
            )
            return ProcessingResult.APPLIED

        logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is not under dispute")
        return ProcessingResult.IGNORED

    def _find_deposit(self, transaction: Transaction) -> Optional[Transaction]:
        """Look up the referenced deposit, provided it belongs to the same client."""
        deposit = self._state.get_deposit(transaction.transaction_id)
        if deposit is None or deposit.client_id != transaction.client_id:
            return None
        return deposit
