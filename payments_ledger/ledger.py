"""Ledger store.

Holds client accounts and the deposits that can later be disputed. The
transaction processor is the only caller of the mutators below.
"""
import enum
from decimal import Decimal

from payments_ledger.errors import DuplicateTransactionIdError, MalformedRecordError, UnknownClientError


class TransactionType(enum.Enum):

    """Transaction Types."""

    DEPOSIT = 'deposit'
    WITHDRAWAL = 'withdrawal'
    DISPUTE = 'dispute'
    RESOLVE = 'resolve'
    CHARGEBACK = 'chargeback'

    @classmethod
    def from_name(cls, name):
        """Get transaction type from its csv name."""
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise MalformedRecordError(f'Unknown transaction type {name!r}') from None

    @property
    def carries_amount(self):
        """Check whether records of this type hold an amount."""
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class TransactionStatus(enum.Enum):

    """Dispute lifecycle of a stored deposit."""

    NORMAL = 'normal'
    DISPUTED = 'disputed'
    CHARGED_BACK = 'charged_back'


class Transaction:

    """Client's transaction."""

    def __init__(self, transaction_type, client_id, tx_id, amount=None):
        self.type = transaction_type
        self.client_id = client_id
        self.tx_id = tx_id
        self.amount = amount
        self.status = TransactionStatus.NORMAL

    def __repr__(self):
        return (f'Transaction({self.type.value}, client={self.client_id}, tx={self.tx_id}, '
                f'amount={self.amount}, status={self.status.value})')


class Account:

    """Gather client's balance."""

    def __init__(self, client_id):
        self.client_id = client_id
        self.available = Decimal(0)
        self.held = Decimal(0)
        self.total = Decimal(0)
        self.locked = False
        self.transaction_count = 0

    def __repr__(self):
        return (f'Account(client={self.client_id}, available={self.available}, held={self.held}, '
                f'total={self.total}, locked={self.locked}, transactions={self.transaction_count})')

    def credit(self, amount):
        """Add funds to available."""
        self.available += amount
        self.total += amount

    def debit(self, amount):
        """Take funds from available."""
        self.available -= amount
        self.total -= amount

    def hold(self, amount):
        """Move funds from available to held."""
        self.available -= amount
        self.held += amount

    def release(self, amount):
        """Move funds from held back to available."""
        self.held -= amount
        self.available += amount

    def charge_back(self, amount):
        """Withdraw held funds for good and freeze the account."""
        self.held -= amount
        self.total -= amount
        self.lock()

    def lock(self):
        """Freeze the account. There is no unlock."""
        self.locked = True

    def get_balance(self):
        """Get account balance."""
        locked = 'true' if self.locked else 'false'
        return f'{self.client_id},{self.available},{self.held},{self.total},{locked}'


class Ledger:

    """Accounts by client id and deposits by transaction id."""

    def __init__(self):
        self._accounts = {}
        self._deposits = {}

    def get_or_create_account(self, client_id):
        """Get client's account, opening an empty one on first use."""
        account = self._accounts.get(client_id)
        if account is None:
            account = self._accounts[client_id] = Account(client_id)
        return account

    def get_account_mut(self, client_id):
        """Get existing client's account."""
        try:
            return self._accounts[client_id]
        except KeyError:
            raise UnknownClientError(client_id) from None

    def record_deposit(self, transaction):
        """Store deposit for later dispute lookups."""
        if transaction.type is not TransactionType.DEPOSIT:
            raise ValueError(f'Only deposits are stored, got {transaction.type.value}')
        if transaction.tx_id in self._deposits:
            raise DuplicateTransactionIdError(transaction.tx_id)
        self._deposits[transaction.tx_id] = transaction

    def get_transaction_mut(self, tx_id):
        """Get stored deposit or None."""
        return self._deposits.get(tx_id)

    def accounts(self):
        """Get all accounts in the order clients were first seen."""
        return list(self._accounts.values())
