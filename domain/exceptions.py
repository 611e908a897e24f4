"""Domain exceptions: raised by the import pipeline and the quotation service.

Only stdlib imports allowed.
"""


class QuotationError(Exception):
    """Base error for quotation operations."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ParseError(QuotationError):
    """Workbook unreadable, or no usable header/rows found in it."""


class ReferentialError(QuotationError):
    """An id points outside the process it is used in."""


class NotFoundError(QuotationError):
    """A referenced process, quotation or baseline item does not exist."""


class ValidationError(QuotationError):
    """Input is incomplete or inconsistent."""


class DuplicateError(QuotationError):
    """A supplier, order number or guide number is already registered."""
