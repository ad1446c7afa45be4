import copy
from typing import Dict, List, Optional

from models import Transaction, ClientAccount


class StateManager:
    """
    Client accounts and the deposit/withdrawal history used for dispute lookups.
    Owned by a single TransactionProcessor; nothing else writes to these maps.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._transactions: Dict[int, Transaction] = {}

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def store_transaction(self, transaction: Transaction) -> None:
        """Store transaction for future dispute lookups."""
        self._transactions[transaction.transaction_id] = transaction

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve stored transaction by ID."""
        return self._transactions.get(transaction_id)

    def has_transaction(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def get_all_accounts(self) -> List[ClientAccount]:
        """Copies of all accounts ordered by client id (for final output)."""
        return [copy.copy(self._accounts[client_id]) for client_id in sorted(self._accounts)]
