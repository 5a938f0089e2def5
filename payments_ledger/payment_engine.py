""" Payments ledger engine.

Writing to stdout
Example::
payments-ledger <NAME>.csv

Writing to file
Example::
payments-ledger <NAME>.csv > <NAME>.csv

Rejecting every transaction of a locked account
Example::
payments-ledger --freeze-locked <NAME>.csv

Log level is read from the PAYMENT_ENGINE_LOG_LEVEL environment variable.

"""
import logging
import os
import re
import sys
from decimal import Decimal

import numpy
import pandas

from payments_ledger.errors import MalformedRecordError, PaymentsEngineError, UsageError
from payments_ledger.ledger import Transaction, TransactionType
from payments_ledger.processor import LockedAccountPolicy, TransactionProcessor


USAGE = 'Usage: payments-ledger [--freeze-locked] [--chunksize N] <transactions.csv>'
LOG_LEVEL_VARIABLE = 'PAYMENT_ENGINE_LOG_LEVEL'
DEFAULT_CHUNKSIZE = 1000
AMOUNT_DECIMAL_PLACES = 4
AMOUNT_PATTERN = re.compile(r'[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)')


def configure_logging():
    """Send logs to stderr, stdout carries the report."""
    name = os.environ.get(LOG_LEVEL_VARIABLE, 'WARNING').strip().upper()
    level = logging.getLevelName(name)
    known = isinstance(level, int)
    logging.basicConfig(format='%(levelname)s:%(message)s', level=level if known else logging.WARNING,
                        stream=sys.stderr)
    if not known:
        logging.warning('Unknown log level %r in %s, using WARNING', name, LOG_LEVEL_VARIABLE)


class ClientsBalancesReporter:

    """Report all clients' balances."""

    def __init__(self, accounts):
        self._accounts = accounts

    @staticmethod
    def get_header():
        """Get fields names."""
        return 'client,available,held,total,locked'

    def get_balances(self):
        """Get all clients' balances."""
        for account in self._accounts:
            yield account.get_balance()


class CmdParser:

    """Parse command line execution arguments."""

    def __init__(self, argv=None):
        self._data = sys.argv[1:] if argv is None else list(argv)
        self._input_file = ''
        self._locked_policy = LockedAccountPolicy.APPLY
        self._chunksize = DEFAULT_CHUNKSIZE
        self._update()

    def _update(self):
        positional = []
        arguments = iter(self._data)
        for argument in arguments:
            if argument == '--freeze-locked':
                self._locked_policy = LockedAccountPolicy.REJECT
            elif argument == '--chunksize':
                self._chunksize = self._parse_chunksize(next(arguments, None))
            elif argument.startswith('--'):
                raise UsageError(f'Unknown option {argument}')
            else:
                positional.append(argument)

        if len(positional) != 1:
            raise UsageError('Exactly one input file is expected')
        self._input_file = positional[0]

    @staticmethod
    def _parse_chunksize(value):
        try:
            chunksize = int(value)
        except (TypeError, ValueError):
            raise UsageError(f'Invalid chunksize {value!r}') from None
        if chunksize < 1:
            raise UsageError(f'Invalid chunksize {value!r}')
        return chunksize

    @property
    def input_file(self):
        """Get input file name."""
        return self._input_file

    @property
    def locked_policy(self):
        """Get policy for transactions on locked accounts."""
        return self._locked_policy

    @property
    def chunksize(self):
        """Get number of csv rows read at once."""
        return self._chunksize


def parse_identifier(value, field, dtype):
    """Decode an unsigned id column within the numpy dtype range."""
    limits = numpy.iinfo(dtype)
    digits = str(value).strip()
    if not (digits.isascii() and digits.isdigit()):
        raise MalformedRecordError(f'Invalid {field} {value!r}')
    number = int(digits)
    if not limits.min <= number <= limits.max:
        raise MalformedRecordError(f'{field} {number} out of range [{limits.min}, {limits.max}]')
    return number


def parse_amount(value):
    """Decode amount, keeping its exact decimal digits."""
    value = str(value).strip()
    if not value:
        return None
    if not AMOUNT_PATTERN.fullmatch(value):
        raise MalformedRecordError(f'Invalid amount {value!r}')
    amount = Decimal(value)
    if amount.as_tuple().exponent < -AMOUNT_DECIMAL_PLACES:
        raise MalformedRecordError(f'Amount {value!r} exceeds {AMOUNT_DECIMAL_PLACES} decimal places')
    return amount


class CsvTransactionsReader:

    """Read transactions from csv."""

    FIELDS = ['type', 'client', 'tx', 'amount']
    ID_TYPES = {'client': numpy.uint16,
                'tx': numpy.uint32}

    def __init__(self, path, chunksize=DEFAULT_CHUNKSIZE):
        self._path = path
        self._chunksize = chunksize

    def _check_header(self, header):
        columns = [value if isinstance(value, str) else '' for value in header]
        if columns != self.FIELDS:
            raise MalformedRecordError(f'Unexpected columns {columns}, expected {self.FIELDS}')

    def _decode(self, row):
        # Short rows, like disputes without the trailing comma, lack the amount.
        values = [value if isinstance(value, str) else '' for value in row]
        transaction_type, client, tx, amount = values + [''] * (len(self.FIELDS) - len(values))
        return [TransactionType.from_name(transaction_type),
                parse_identifier(client, 'client', self.ID_TYPES['client']),
                parse_identifier(tx, 'tx', self.ID_TYPES['tx']),
                parse_amount(amount)]

    def _get_record_from_file(self):
        # The header is read as a plain row: it fixes the field count, so any
        # longer row, the first one included, fails to parse.
        reader = pandas.read_csv(self._path, header=None, dtype=str, iterator=True, chunksize=self._chunksize,
                                 skipinitialspace=True, keep_default_na=False)
        with reader:
            header_checked = False
            for chunk in reader:
                if len(chunk.columns) > len(self.FIELDS):
                    raise MalformedRecordError(f'Rows with {len(chunk.columns)} fields, expected {len(self.FIELDS)}')
                rows = chunk.itertuples(index=False, name=None)
                if not header_checked:
                    self._check_header(next(rows, ()))
                    header_checked = True
                for row in rows:
                    yield self._decode(row)
        logging.info('All transactions read')

    def get(self):
        """Get records one at a time."""
        return self._get_record_from_file()


class TransactionValidator:

    """Validate transaction data correctness."""

    def is_valid(self, transaction):
        """Check transaction correctness, raise on records that can't be processed."""
        if not transaction.type.carries_amount:
            if transaction.amount is not None:
                logging.debug('Ignoring amount of %s transaction %s', transaction.type.value, transaction.tx_id)
                transaction.amount = None
            return True
        if transaction.amount is None:
            raise MalformedRecordError(f'{transaction.type.value} transaction {transaction.tx_id} has no amount')
        return self._is_greater_than_zero(transaction)

    @staticmethod
    def _is_greater_than_zero(transaction):
        if transaction.amount > 0:
            return True
        logging.error('Amount of transaction %s must be greater than zero', transaction.tx_id)
        return False


class TransactionsCreator:

    """Create valid transactions."""

    def __init__(self, input_reader, validator):
        self._input_reader = input_reader
        self._validator = validator

    def get(self):
        """Get valid transaction."""
        for transaction_type, client_id, tx_id, amount in self._input_reader.get():
            transaction = Transaction(transaction_type, client_id, tx_id, amount)
            if self._validator.is_valid(transaction):
                yield transaction


class Reporter:

    """Report data provided."""

    @staticmethod
    def write(data):
        """Write data provided."""
        print(data, flush=True)


class PaymentsEngine:

    """Handle payments."""

    def __init__(self, input_data, output, locked_policy=LockedAccountPolicy.APPLY):
        self._transactions_parser = TransactionsCreator(input_data, TransactionValidator())
        self._processor = TransactionProcessor(locked_policy=locked_policy)
        self._output = output

    @property
    def ledger(self):
        """Get ledger being processed."""
        return self._processor.ledger

    def run(self):
        """Handle transactions, then report balances once the input is exhausted."""
        for transaction in self._transactions_parser.get():
            self._processor.process(transaction)

        balances_reporter = ClientsBalancesReporter(self.ledger.accounts())

        self._output.write(balances_reporter.get_header())

        for balance in balances_reporter.get_balances():
            self._output.write(balance)


def main():
    """Run payment engine."""

    configure_logging()
    try:
        parser = CmdParser()
        bank = PaymentsEngine(CsvTransactionsReader(parser.input_file, parser.chunksize), Reporter(),
                              parser.locked_policy)
        bank.run()
    except UsageError as error:
        logging.error(error)
        print(USAGE, file=sys.stderr)
        sys.exit(1)
    except (PaymentsEngineError, OSError, UnicodeDecodeError,
            pandas.errors.ParserError, pandas.errors.EmptyDataError) as error:
        logging.error('Could not process transactions: %s', error)
        sys.exit(1)


if __name__ == '__main__':
    main()
