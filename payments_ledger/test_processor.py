from decimal import Decimal

from payments_ledger.ledger import Transaction, TransactionStatus, TransactionType
from payments_ledger.processor import LockedAccountPolicy, TransactionProcessor


def deposit(client_id, tx_id, amount):
    return Transaction(TransactionType.DEPOSIT, client_id, tx_id, Decimal(amount))


def withdrawal(client_id, tx_id, amount):
    return Transaction(TransactionType.WITHDRAWAL, client_id, tx_id, Decimal(amount))


def dispute(client_id, tx_id):
    return Transaction(TransactionType.DISPUTE, client_id, tx_id)


def resolve(client_id, tx_id):
    return Transaction(TransactionType.RESOLVE, client_id, tx_id)


def chargeback(client_id, tx_id):
    return Transaction(TransactionType.CHARGEBACK, client_id, tx_id)


class TestTransactionProcessor:

    def setup_method(self):
        self.processor = TransactionProcessor()
        self.ledger = self.processor.ledger

    def run(self, *transactions):
        results = []
        for transaction in transactions:
            results.append(self.processor.process(transaction))
            for account in self.ledger.accounts():
                assert account.total == account.available + account.held
        return results

    def balances(self, client_id):
        account = self.ledger.get_account_mut(client_id)
        return account.available, account.held, account.total, account.locked

    def test_every_type_has_a_handler(self):
        assert set(self.processor._handlers) == set(TransactionType)

    def test_deposit(self):
        assert self.run(deposit(1, 1, '5.0')) == [True]
        assert self.balances(1) == (Decimal('5.0'), Decimal(0), Decimal('5.0'), False)

    def test_withdrawal(self):
        self.run(deposit(1, 1, '5.0'), withdrawal(1, 2, '3.0'))
        available, _, total, _ = self.balances(1)
        assert available == Decimal('2.0')
        assert total == Decimal('2.0')

    def test_withdrawal_with_insufficient_funds_is_ignored(self):
        assert self.run(deposit(1, 1, '5.0'), withdrawal(1, 2, '10.0')) == [True, False]
        available, _, total, _ = self.balances(1)
        assert available == Decimal('5.0')
        assert total == Decimal('5.0')

    def test_withdrawal_of_whole_balance(self):
        assert self.run(deposit(1, 1, '5.0'), withdrawal(1, 2, '5.0')) == [True, True]
        assert self.balances(1)[0] == Decimal(0)

    def test_dispute_holds_funds(self):
        self.run(deposit(1, 1, '5.0'), dispute(1, 1))
        assert self.balances(1) == (Decimal(0), Decimal('5.0'), Decimal('5.0'), False)
        assert self.ledger.get_transaction_mut(1).status is TransactionStatus.DISPUTED

    def test_chargeback_removes_funds_and_locks(self):
        self.run(deposit(1, 1, '5.0'), dispute(1, 1), chargeback(1, 1))
        assert self.balances(1) == (Decimal(0), Decimal(0), Decimal(0), True)
        assert self.ledger.get_transaction_mut(1).status is TransactionStatus.CHARGED_BACK

    def test_dispute_of_unknown_transaction_creates_empty_account(self):
        assert self.run(dispute(1, 99)) == [False]
        assert self.balances(1) == (Decimal(0), Decimal(0), Decimal(0), False)
        assert self.ledger.get_account_mut(1).transaction_count == 1

    def test_dispute_twice_has_effect_once(self):
        assert self.run(deposit(1, 1, '5.0'), dispute(1, 1), dispute(1, 1)) == [True, True, False]
        assert self.balances(1)[:2] == (Decimal(0), Decimal('5.0'))

    def test_dispute_then_resolve_restores_balances(self):
        self.run(deposit(1, 1, '1.2345'), deposit(1, 2, '0.0001'))
        before = self.balances(1)
        assert self.run(dispute(1, 1), resolve(1, 1)) == [True, True]
        assert self.balances(1) == before
        assert self.ledger.get_transaction_mut(1).status is TransactionStatus.NORMAL

    def test_resolve_and_chargeback_need_a_dispute(self):
        assert self.run(deposit(1, 1, '5.0'), resolve(1, 1), chargeback(1, 1)) == [True, False, False]
        assert self.balances(1) == (Decimal('5.0'), Decimal(0), Decimal('5.0'), False)

    def test_dispute_family_ignores_other_clients_transactions(self):
        self.run(deposit(1, 1, '5.0'))
        assert self.run(dispute(2, 1)) == [False]
        self.run(dispute(1, 1))
        assert self.run(resolve(2, 1), chargeback(2, 1)) == [False, False]
        assert self.balances(1) == (Decimal(0), Decimal('5.0'), Decimal('5.0'), False)
        assert self.balances(2) == (Decimal(0), Decimal(0), Decimal(0), False)

    def test_withdrawals_can_not_be_disputed(self):
        assert self.run(deposit(1, 1, '5.0'), withdrawal(1, 2, '1.0'), dispute(1, 2)) == [True, True, False]
        assert self.balances(1)[:2] == (Decimal('4.0'), Decimal(0))

    def test_charged_back_transaction_is_final(self):
        self.run(deposit(1, 1, '5.0'), deposit(1, 2, '3.0'), dispute(1, 1), chargeback(1, 1))
        assert self.run(dispute(1, 1), resolve(1, 1), chargeback(1, 1)) == [False, False, False]
        assert self.balances(1) == (Decimal('3.0'), Decimal(0), Decimal('3.0'), True)

    def test_duplicate_deposit_is_ignored_but_counted(self):
        assert self.run(deposit(1, 1, '5.0'), deposit(1, 1, '7.0')) == [True, False]
        assert self.balances(1)[0] == Decimal('5.0')
        assert self.ledger.get_transaction_mut(1).amount == Decimal('5.0')
        assert self.ledger.get_account_mut(1).transaction_count == 2

    def test_transaction_count_includes_rejections(self):
        self.run(deposit(1, 1, '1.0'), withdrawal(1, 2, '9.0'), dispute(1, 3), deposit(2, 4, '1.0'))
        assert self.ledger.get_account_mut(1).transaction_count == 3
        assert self.ledger.get_account_mut(2).transaction_count == 1

    def test_locked_account_applies_transactions_by_default(self):
        self.run(deposit(1, 1, '5.0'), dispute(1, 1), chargeback(1, 1))
        assert self.run(deposit(1, 2, '2.0'), withdrawal(1, 3, '1.0')) == [True, True]
        assert self.balances(1) == (Decimal('1.0'), Decimal(0), Decimal('1.0'), True)

    def test_lock_is_never_cleared(self):
        self.run(deposit(1, 1, '5.0'), deposit(1, 2, '5.0'), dispute(1, 1), chargeback(1, 1))
        for transaction in (dispute(1, 2), resolve(1, 2), deposit(1, 3, '1.0'), withdrawal(1, 4, '1.0')):
            self.run(transaction)
            assert self.ledger.get_account_mut(1).locked is True


class TestFrozenLockedAccounts:

    def setup_method(self):
        self.processor = TransactionProcessor(locked_policy=LockedAccountPolicy.REJECT)
        self.ledger = self.processor.ledger

    def test_locked_account_rejects_everything(self):
        for transaction in (deposit(1, 1, '5.0'), deposit(1, 2, '4.0'), dispute(1, 1), chargeback(1, 1)):
            assert self.processor.process(transaction)

        for transaction in (deposit(1, 3, '2.0'), withdrawal(1, 4, '1.0'), dispute(1, 2)):
            assert self.processor.process(transaction) is False

        account = self.ledger.get_account_mut(1)
        assert (account.available, account.held, account.total) == (Decimal('4.0'), Decimal(0), Decimal('4.0'))
        assert account.transaction_count == 7
        assert self.ledger.get_transaction_mut(3) is None
        assert self.ledger.get_transaction_mut(2).status is TransactionStatus.NORMAL

    def test_other_clients_are_unaffected(self):
        for transaction in (deposit(1, 1, '5.0'), dispute(1, 1), chargeback(1, 1)):
            self.processor.process(transaction)
        assert self.processor.process(deposit(2, 2, '1.0'))
        assert self.ledger.get_account_mut(2).available == Decimal('1.0')
