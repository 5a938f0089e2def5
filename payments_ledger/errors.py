"""Payments ledger exceptions."""


class PaymentsEngineError(Exception):

    """Base class for payments ledger errors."""


class UsageError(PaymentsEngineError):

    """Wrong command line invocation."""


class MalformedRecordError(PaymentsEngineError, ValueError):

    """Input record could not be decoded, aborts the run."""


class LedgerError(PaymentsEngineError):

    """Record-level ledger failure, the record is rejected."""


class UnknownClientError(LedgerError):

    """No account exists for the client."""

    def __init__(self, client_id):
        super().__init__(f'Unknown client {client_id}')
        self.client_id = client_id


class DuplicateTransactionIdError(LedgerError):

    """Deposit transaction id is already stored."""

    def __init__(self, tx_id):
        super().__init__(f'Duplicated transaction id {tx_id}')
        self.tx_id = tx_id
