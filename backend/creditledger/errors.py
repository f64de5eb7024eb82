class LedgerError(Exception):
    """Base class for errors that abort an operation before anything is written."""
    pass


class ValidationError(LedgerError):
    """Malformed input, e.g. a zero quantity or a UOM that does not fit the product."""
    pass


class InvalidTransitionError(LedgerError):
    """The credit note is not in a state that allows the requested transition.

    Also raised to the losing side of two concurrent transitions on the same note.
    """
    pass


class NotFoundError(LedgerError):
    """A credit note, product or invoice does not exist."""
    pass


class LedgerWarning(UserWarning):
    """Non-fatal problem reported next to a successful result. Never raised across a transition."""

    def as_dict(self):
        return {"type": type(self).__name__, "message": str(self)}


class ReconciliationWarning(LedgerWarning):
    """The linked invoice balance could not be recomputed."""
    pass


class AuditWriteWarning(LedgerWarning):
    """The audit entry could not be written."""
    pass
