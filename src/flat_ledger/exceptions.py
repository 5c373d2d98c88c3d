"""Custom exceptions for flat-ledger.

The ledger computations never raise; these errors belong to the layers that
load configuration and household data around them.
"""


class FlatLedgerError(Exception):
    """Base exception for all flat-ledger errors."""

    pass


class ConfigurationError(FlatLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class HouseholdLoadError(FlatLedgerError):
    """Raised when a household snapshot cannot be read or validated."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Could not load household data from {path}")


class MemberNotFoundError(FlatLedgerError):
    """Raised when a member id is not part of the household."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member {member_id} is not part of this household")
