"""Exceptions raised while reading maintenance data."""


class MalformedRecordError(ValueError):
    """
    Raised when an aircraft or maintenance-window record cannot be parsed.

    Fleet-level callers catch this, log it, and skip the offending record
    so one bad row never stops evaluation of the rest of the fleet.
    """

    def __init__(self, message: str, record: dict = None):
        super().__init__(message)
        self.record = record or {}
