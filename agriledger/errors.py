# agriledger/errors.py
"""
Closed set of failures raised by the ledger.

Every failure is raised before any write is flushed, so a caught
``LedgerError`` always means the store is unchanged.
"""


class LedgerError(Exception):
    code = "LedgerError"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.code)
        self.context = context


class EmptyRequiredField(LedgerError):
    code = "EmptyRequiredField"


class InvalidTimeRange(LedgerError):
    code = "InvalidTimeRange"


class InvalidYield(LedgerError):
    code = "InvalidYield"


class InvalidBatchId(LedgerError):
    code = "InvalidBatchId"


class InvalidAreaCovered(LedgerError):
    code = "InvalidAreaCovered"


class InvalidDate(LedgerError):
    code = "InvalidDate"


class StringTooLong(LedgerError):
    code = "StringTooLong"


class UnauthorizedAccess(LedgerError):
    """Caller holds neither the owner identity nor an operator grant."""

    code = "UnauthorizedAccess"


class UnauthorizedCaller(UnauthorizedAccess):
    """Caller is not the owner on an owner-only operation."""

    code = "UnauthorizedCaller"


class ContractPaused(LedgerError):
    code = "ContractPaused"


# Only raised when the matching hardening flag is enabled in Settings.
class BatchAlreadyExists(LedgerError):
    code = "BatchAlreadyExists"


class UnknownRecord(LedgerError):
    code = "UnknownRecord"
