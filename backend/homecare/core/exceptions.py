"""
Custom exceptions for the application.
Following SOLID principles - centralized error handling.
"""

from typing import List, Optional


class HomecareError(Exception):
    """Base class for errors raised by the billing core."""

    pass


class InvariantViolation(HomecareError):
    """
    Raised when a value handed to the core breaks one of its data invariants
    (e.g. a line whose total price is not unit price times quantity).

    Signals bad upstream data entry, not a runtime condition. Callers should
    surface it as a data-quality warning pointing at ``entity_id``.
    """

    def __init__(self, entity_id: Optional[str], message: str):
        super().__init__(f"{entity_id}: {message}" if entity_id else message)
        self.entity_id = entity_id
        self.message = message


class IngestionError(HomecareError):
    """
    Raised when a stored record cannot be converted into a domain value
    (missing or inconsistent fields for its payment method).
    """

    def __init__(self, entity_id: Optional[str], errors: List[str]):
        joined = "; ".join(errors) if errors else "invalid record"
        super().__init__(f"{entity_id}: {joined}" if entity_id else joined)
        self.entity_id = entity_id
        self.errors = list(errors)


class UnknownTransactionKind(HomecareError):
    """Raised when a transaction kind other than sale or rental is requested."""

    pass
