"""
Ledger error taxonomy

Every engine error derives from LedgerError and carries a stable code.
Validation errors are raised before anything is written.
"""


class LedgerError(Exception):
    """Base ledger error"""

    code: str = "ledger_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(LedgerError):
    """Referenced row does not exist"""

    code = "not_found"

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class PermissionDeniedError(LedgerError):
    """Caller role may not write to the ledger"""

    code = "permission_denied"


class InvalidAmountError(LedgerError):
    """Amount is zero, negative or malformed"""

    code = "invalid_amount"


class UnbalancedEntryError(LedgerError):
    """Debits do not equal credits - never persisted"""

    code = "unbalanced_entry"


class AlreadyVoidError(LedgerError):
    """Entry, record or charge is already void"""

    code = "already_void"


class InvalidVoidTargetError(LedgerError):
    """Entry cannot be voided (e.g. it is itself a reversal)"""

    code = "invalid_void_target"


class AlreadyPaidError(LedgerError):
    """Charge has been paid; refund the payment first"""

    code = "already_paid"


class HasPaidChargesError(LedgerError):
    """Billing record has paid charges; refund the payments first"""

    code = "has_paid_charges"


class ReasonRequiredError(LedgerError):
    """Void or refund without a reason"""

    code = "reason_required"


class InsufficientFundsError(LedgerError):
    """Transfer exceeds the funds balance"""

    code = "insufficient_funds"


class OverpaymentError(LedgerError):
    """Transfer exceeds what the scout owes"""

    code = "overpayment"


class RefundExceedsPaymentError(LedgerError):
    """Refund larger than the unrefunded part of the payment"""

    code = "refund_exceeds_payment"


class ProcessorPaymentNotVoidableError(LedgerError):
    """Card payments are refunded, not voided"""

    code = "processor_payment_not_voidable"


class InvalidStateTransitionError(LedgerError):
    """Reconciliation state does not allow the operation"""

    code = "invalid_state_transition"


class ExternalCaptureFailedError(LedgerError):
    """Processor declined the capture or did not confirm it in time

    Never retried automatically; the caller must start over.
    """

    code = "external_capture_failed"

    def __init__(self, message: str, processor_error: str | None = None):
        self.processor_error = processor_error
        super().__init__(message)
