from typing import Dict, Optional, Set

from models import Transaction, ClientAccount


class LedgerState:
    """
    State owned by a single processing run.
    Holds client accounts, the deposit ledger used to resolve disputes,
    and the set of transaction ids currently under dispute.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._deposits: Dict[int, Transaction] = {}
        self._disputed_transaction_ids: Set[int] = set()

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def store_deposit(self, transaction: Transaction) -> bool:
        """
        Store deposit for future dispute lookups.
        The first deposit for an id wins; entries are never replaced or removed.
        Returns False if the id was already recorded.
        """
        if transaction.transaction_id in self._deposits:
            return False
        self._deposits[transaction.transaction_id] = transaction
        return True

    def get_deposit(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve stored deposit by ID."""
        return self._deposits.get(transaction_id)

    def mark_transaction_disputed(self, transaction_id: int) -> None:
        self._disputed_transaction_ids.add(transaction_id)

    def is_transaction_disputed(self, transaction_id: int) -> bool:
        return transaction_id in self._disputed_transaction_ids

    def clear_transaction_dispute(self, transaction_id: int) -> None:
        self._disputed_transaction_ids.discard(transaction_id)

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)
