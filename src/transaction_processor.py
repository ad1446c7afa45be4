import copy
import logging
from typing import List, Optional, Tuple

from config import LedgerSettings
from models import Transaction, TransactionType, ClientAccount, IgnoreReason, ProcessingResult
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to client accounts, one at a time.

    Deposits and withdrawals are applied with their own amount and kept for
    later reference. Disputes, resolves and chargebacks carry no amount: they
    look up the deposit or withdrawal they cite and apply its amount to the
    account of the client that owns it.

    Anything that cannot be applied is skipped without raising. The returned
    ProcessingResult says whether the event was applied and, if not, why.

    With strict_disputes enabled the dispute lifecycle is enforced: a record
    can only be disputed once until resolved, only disputed records can be
    resolved, transaction ids are not reused, and deposits or withdrawals that
    were refused are not kept for later disputes.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or LedgerSettings()
        self._state = StateManager()

    @property
    def strict(self) -> bool:
        return self._settings.strict_disputes

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        account = self._state.get_or_create_account(transaction.client_id)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                result = self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                result = self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                result = self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                result = self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                result = self._handle_chargeback(account, transaction)
            case _:
                raise ValueError(f"unsupported transaction type {transaction.transaction_type}")

        if not result.is_applied:
            self._log_ignored(transaction, result.reason)
        return result

    def snapshot(self) -> List[ClientAccount]:
        return self._state.get_all_accounts()

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        stored = self._state.get_transaction(transaction_id)
        return copy.copy(stored) if stored is not None else None

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        return self._handle_funds_movement(account, transaction, account.deposit)

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        return self._handle_funds_movement(account, transaction, account.withdraw)

    def _handle_funds_movement(self, account: ClientAccount, transaction: Transaction, apply) -> ProcessingResult:
        if self.strict and self._state.has_transaction(transaction.transaction_id):
            return ProcessingResult.ignored(IgnoreReason.DUPLICATE_TRANSACTION)

        if apply(transaction.amount):
            result = ProcessingResult.applied()
        elif account.locked:
            result = ProcessingResult.ignored(IgnoreReason.ACCOUNT_LOCKED)
        else:
            result = ProcessingResult.ignored(IgnoreReason.INSUFFICIENT_FUNDS)

        if result.is_applied or not self.strict:
            self._state.store_transaction(transaction)
        return result

    def _find_referenced(self, transaction: Transaction) -> Tuple[Optional[Transaction], Optional[IgnoreReason]]:
        original = self._state.get_transaction(transaction.transaction_id)
        if original is None:
            return None, IgnoreReason.UNKNOWN_TRANSACTION
        if original.client_id != transaction.client_id:
            return None, IgnoreReason.CLIENT_MISMATCH
        return original, None

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original, reason = self._find_referenced(transaction)
        if original is None:
            return ProcessingResult.ignored(reason)

        if self.strict and original.disputed:
            return ProcessingResult.ignored(IgnoreReason.ALREADY_DISPUTED)

        if not account.dispute(original.amount):
            return ProcessingResult.ignored(IgnoreReason.ACCOUNT_LOCKED)
        original.mark_disputed()
        return ProcessingResult.applied()

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original, reason = self._find_referenced(transaction)
        if original is None:
            return ProcessingResult.ignored(reason)

        if self.strict and not original.disputed:
            return ProcessingResult.ignored(IgnoreReason.NOT_DISPUTED)

        if not account.resolve(original.amount):
            return ProcessingResult.ignored(IgnoreReason.ACCOUNT_LOCKED)
        original.clear_disputed()
        return ProcessingResult.applied()

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original = self._state.get_transaction(transaction.transaction_id)
        if original is None:
            return ProcessingResult.ignored(IgnoreReason.UNKNOWN_TRANSACTION)

        if not original.disputed:
            return ProcessingResult.ignored(IgnoreReason.NOT_DISPUTED)

        if original.client_id != transaction.client_id:
            return ProcessingResult.ignored(IgnoreReason.CLIENT_MISMATCH)

        if not account.chargeback(original.amount):
            return ProcessingResult.ignored(IgnoreReason.ACCOUNT_LOCKED)
        return ProcessingResult.applied()

    def _log_ignored(self, transaction: Transaction, reason: IgnoreReason) -> None:
        if reason is IgnoreReason.CLIENT_MISMATCH:
            owner = self._state.get_transaction(transaction.transaction_id).client_id
            logger.warning(f"Ignored {transaction}: tx {transaction.transaction_id} belongs to client {owner}")
        else:
            logger.info(f"Ignored {transaction}: {reason.value}")
