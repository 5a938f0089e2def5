"""Transaction processor.

Applies one transaction at a time to the ledger, in input order. Business
rule violations (not enough funds, disputes on unknown or foreign deposits,
duplicated deposit ids) are logged and the transaction is ignored, they never
abort the run.
"""
import enum
import logging

from payments_ledger.errors import DuplicateTransactionIdError
from payments_ledger.ledger import Ledger, TransactionStatus, TransactionType


logger = logging.getLogger(__name__)


class LockedAccountPolicy(enum.Enum):

    """What happens to transactions of a frozen account."""

    APPLY = 'apply'
    REJECT = 'reject'


class TransactionProcessor:

    """Handle transactions against the ledger."""

    def __init__(self, ledger=None, locked_policy=LockedAccountPolicy.APPLY):
        self.ledger = ledger if ledger is not None else Ledger()
        self._locked_policy = locked_policy
        self._handlers = {
            TransactionType.DEPOSIT: self._deposit,
            TransactionType.WITHDRAWAL: self._withdrawal,
            TransactionType.DISPUTE: self._dispute,
            TransactionType.RESOLVE: self._resolve,
            TransactionType.CHARGEBACK: self._chargeback,
        }

    def process(self, transaction):
        """Apply transaction, return whether it had any effect."""
        account = self.ledger.get_or_create_account(transaction.client_id)
        account.transaction_count += 1
        logger.debug('Processing %r on %r', transaction, account)

        if account.locked and self._locked_policy is LockedAccountPolicy.REJECT:
            logger.warning('Client %s account is locked, could not perform %s',
                           account.client_id, transaction.type.value)
            return False

        applied = self._handlers[transaction.type](account, transaction)
        logger.debug('Account after transaction: %r', account)
        return applied

    def _deposit(self, account, transaction):
        try:
            self.ledger.record_deposit(transaction)
        except DuplicateTransactionIdError as error:
            logger.warning('%s, deposit ignored', error)
            return False
        account.credit(transaction.amount)
        return True

    def _withdrawal(self, account, transaction):
        if account.available < transaction.amount:
            logger.warning('Not enough funds available for tx %s (%s < %s)',
                           transaction.tx_id, account.available, transaction.amount)
            return False
        account.debit(transaction.amount)
        return True

    def _dispute(self, account, transaction):
        original = self._referenced_deposit(account, transaction, TransactionStatus.NORMAL)
        if original is None:
            return False
        original.status = TransactionStatus.DISPUTED
        account.hold(original.amount)
        return True

    def _resolve(self, account, transaction):
        original = self._referenced_deposit(account, transaction, TransactionStatus.DISPUTED)
        if original is None:
            return False
        original.status = TransactionStatus.NORMAL
        account.release(original.amount)
        return True

    def _chargeback(self, account, transaction):
        original = self._referenced_deposit(account, transaction, TransactionStatus.DISPUTED)
        if original is None:
            return False
        original.status = TransactionStatus.CHARGED_BACK
        account.charge_back(original.amount)
        return True

    def _referenced_deposit(self, account, transaction, expected_status):
        """Get the deposit a dispute, resolve or chargeback may act on."""
        original = self.ledger.get_transaction_mut(transaction.tx_id)
        if original is None:
            logger.warning('%s not possible, no deposit with tx %s',
                           transaction.type.value.capitalize(), transaction.tx_id)
            return None
        if original.client_id != account.client_id:
            logger.warning('%s not possible, tx %s belongs to client %s',
                           transaction.type.value.capitalize(), transaction.tx_id, original.client_id)
            return None
        if original.status is not expected_status:
            logger.warning('%s not possible, tx %s is %s',
                           transaction.type.value.capitalize(), transaction.tx_id, original.status.value)
            return None
        return original
