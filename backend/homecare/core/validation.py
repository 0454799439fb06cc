"""
Ingestion validation for stored billing records.

The record store keeps payments as flat rows: a method code plus whichever
optional columns that method uses. This module checks those rows and turns
them into typed payment instruments, so nothing past this boundary has to
guess which fields are meaningful.

Usage:
    from homecare.core.validation import to_payment_instrument

    payment = to_payment_instrument({"method": "CHEQUE", "amount": "120", ...})
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from homecare.core.exceptions import IngestionError
from homecare.domain.lines import LineKind
from homecare.domain.payments import (
    BankTransfer,
    Cash,
    Cheque,
    ClaimStatus,
    NationalInsuranceClaim,
    PaymentInstrument,
    PostalOrder,
    PromissoryNote,
)

logger = logging.getLogger(__name__)


class ValidationResult:
    """Container for validation results."""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.is_valid: bool = True
        self.cleaned_data: Dict[str, Any] = {}

    def add_error(self, message: str, field: Optional[str] = None):
        """Add validation error."""
        error_msg = f"{field}: {message}" if field else message
        self.errors.append(error_msg)
        self.is_valid = False
        logger.warning(f"Validation error: {error_msg}")

    def add_warning(self, message: str, field: Optional[str] = None):
        """Add validation warning."""
        warning_msg = f"{field}: {message}" if field else message
        self.warnings.append(warning_msg)
        logger.info(f"Validation warning: {warning_msg}")


class BaseValidator:
    """Base validator with common validation methods."""

    def validate(
        self, data: Dict[str, Any]
    ) -> ValidationResult:  # pragma: no cover - interface definition
        """Validate data for a specific record type."""
        raise NotImplementedError("Subclasses must implement validate")

    @staticmethod
    def validate_required_field(
        value: Any, field_name: str, result: ValidationResult
    ) -> bool:
        """Validate that a required field is present and not empty."""
        if (
            value is None
            or value == ""
            or (isinstance(value, str) and value.strip() == "")
        ):
            result.add_error("is required", field_name)
            return False
        return True

    @staticmethod
    def validate_date(
        value: Any, field_name: str, result: ValidationResult
    ) -> Optional[date]:
        """Validate and convert date field."""
        if value is None or value == "":
            return None

        if isinstance(value, datetime):
            return value.date()

        if isinstance(value, date):
            return value

        if isinstance(value, str):
            try:
                return datetime.strptime(value[:10], "%Y-%m-%d").date()
            except ValueError:
                result.add_error("invalid date, use YYYY-MM-DD", field_name)
                return None

        result.add_error("invalid date format", field_name)
        return None

    @staticmethod
    def validate_decimal(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[Decimal] = None,
        max_value: Optional[Decimal] = None,
    ) -> Optional[Decimal]:
        """Validate and convert decimal field."""
        if value is None or value == "":
            return None

        if isinstance(value, Decimal):
            decimal_value = value
        else:
            try:
                if isinstance(value, str):
                    value = value.strip().replace(" ", "")
                    # Comma as decimal separator (1234,500 -> 1234.500)
                    if "," in value and "." in value:
                        value = value.replace(",", "")
                    elif "," in value:
                        value = value.replace(",", ".")

                decimal_value = Decimal(str(value))
            except (InvalidOperation, TypeError, ValueError):
                result.add_error("invalid number", field_name)
                return None

        if not decimal_value.is_finite():
            result.add_error("invalid number", field_name)
            return None

        if min_value is not None and decimal_value < min_value:
            result.add_error(f"must be at least {min_value}", field_name)
            return None

        if max_value is not None and decimal_value > max_value:
            result.add_error(f"must be at most {max_value}", field_name)
            return None

        return decimal_value

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> Optional[int]:
        """Validate and convert integer field."""
        if value is None or value == "":
            return None

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            result.add_error("must be an integer", field_name)
            return None

        if min_value is not None and int_value < min_value:
            result.add_error(f"must be at least {min_value}", field_name)
            return None

        if max_value is not None and int_value > max_value:
            result.add_error(f"must be at most {max_value}", field_name)
            return None

        return int_value

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        result: ValidationResult,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        allowed_values: Optional[List[str]] = None,
    ) -> Optional[str]:
        """Validate string field."""
        if value is None:
            return None

        if not isinstance(value, str):
            value = str(value)

        value = value.strip()

        if min_length is not None and len(value) < min_length:
            result.add_error(f"must have at least {min_length} characters", field_name)
            return None

        if max_length is not None and len(value) > max_length:
            result.add_error(f"must have at most {max_length} characters", field_name)
            return None

        if allowed_values is not None and value not in allowed_values:
            result.add_error(
                f"must be one of: {', '.join(allowed_values)}", field_name
            )
            return None

        return value if value else None


class PaymentRecordValidator(BaseValidator):
    """Validator for stored payment rows.

    Recognized method codes are the ones the front office records:
    CASH, CHEQUE, VIREMENT (bank transfer), MONDAT (postal order),
    TRAITE (promissory note) and CNAM (insurance claim).
    """

    ALLOWED_METHODS = ["CASH", "CHEQUE", "VIREMENT", "MONDAT", "TRAITE", "CNAM"]

    CNAM_STATUSES = {
        "ATTENTE": ClaimStatus.PENDING,
        "EN_ATTENTE": ClaimStatus.PENDING,
        "PENDING": ClaimStatus.PENDING,
        "ACCORD": ClaimStatus.APPROVED,
        "APPROUVE": ClaimStatus.APPROVED,
        "APPROVED": ClaimStatus.APPROVED,
    }

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        """Validate a payment row and collect the fields its method uses."""
        result = ValidationResult()

        raw_method = data.get("method")
        method = self.validate_string(
            raw_method.upper() if isinstance(raw_method, str) else raw_method,
            "method",
            result,
            allowed_values=self.ALLOWED_METHODS,
        )
        if method is None:
            if raw_method in (None, ""):
                self.validate_required_field(raw_method, "method", result)
            return result
        result.cleaned_data["method"] = method

        amount = self.validate_decimal(
            data.get("amount"), "amount", result, min_value=Decimal("0")
        )
        if amount is not None:
            result.cleaned_data["amount"] = amount

        recorded = self.validate_date(data.get("payment_date"), "payment_date", result)
        if recorded:
            result.cleaned_data["recorded_date"] = recorded

        notes = self.validate_string(data.get("notes"), "notes", result, max_length=1000)
        if notes:
            result.cleaned_data["notes"] = notes

        validate_method = getattr(self, f"_validate_{method.lower()}", None)
        if validate_method is not None:
            validate_method(data, result)
        elif amount is None:
            self.validate_required_field(data.get("amount"), "amount", result)

        return result

    def _validate_cash(self, data: Dict[str, Any], result: ValidationResult):
        raw_total = data.get("cash_total")
        if raw_total in (None, ""):
            raw_total = data.get("amount")
        total = self.validate_decimal(
            raw_total,
            "cash_total",
            result,
            min_value=Decimal("0"),
        )
        upfront = self.validate_decimal(
            data.get("cash_upfront"), "cash_upfront", result, min_value=Decimal("0")
        )
        if total is None:
            self.validate_required_field(data.get("cash_total"), "cash_total", result)
        if upfront is None:
            self.validate_required_field(data.get("cash_upfront"), "cash_upfront", result)
        if total is None or upfront is None:
            return

        amount = result.cleaned_data.get("amount")
        if amount is not None and amount != total:
            result.add_error(
                f"{amount} does not equal cash total {total}", "amount"
            )
            return

        remainder = self.validate_decimal(
            data.get("cash_remaining"), "cash_remaining", result
        )
        if remainder is not None and remainder != total - upfront:
            result.add_error(
                f"{remainder} does not equal total {total} minus upfront {upfront}",
                "cash_remaining",
            )
            return
        if upfront > total:
            result.add_warning(
                f"upfront {upfront} exceeds total {total}", "cash_upfront"
            )

        result.cleaned_data["amount"] = total
        result.cleaned_data["total"] = total
        result.cleaned_data["upfront"] = upfront
        due = self.validate_date(
            data.get("cash_remaining_due_date"), "cash_remaining_due_date", result
        )
        if due:
            result.cleaned_data["remainder_due_date"] = due

    def _validate_cheque(self, data: Dict[str, Any], result: ValidationResult):
        self.validate_required_field(data.get("amount"), "amount", result)
        number = self.validate_string(
            data.get("cheque_number"), "cheque_number", result, max_length=64
        )
        if number:
            result.cleaned_data["number"] = number
        issued = self.validate_date(data.get("cheque_date"), "cheque_date", result)
        if issued:
            result.cleaned_data["issue_date"] = issued

    def _validate_virement(self, data: Dict[str, Any], result: ValidationResult):
        self.validate_required_field(data.get("amount"), "amount", result)

    def _validate_mondat(self, data: Dict[str, Any], result: ValidationResult):
        self.validate_required_field(data.get("amount"), "amount", result)

    def _validate_traite(self, data: Dict[str, Any], result: ValidationResult):
        self.validate_required_field(data.get("amount"), "amount", result)
        if not self.validate_required_field(
            data.get("traite_due_date"), "traite_due_date", result
        ):
            return
        due = self.validate_date(data.get("traite_due_date"), "traite_due_date", result)
        if due:
            result.cleaned_data["due_date"] = due

    def _validate_cnam(self, data: Dict[str, Any], result: ValidationResult):
        self.validate_required_field(data.get("amount"), "amount", result)
        raw_status = data.get("cnam_status")
        if raw_status in (None, ""):
            result.add_warning("missing, treated as pending", "cnam_status")
            result.cleaned_data["status"] = ClaimStatus.PENDING
        else:
            status = self.CNAM_STATUSES.get(str(raw_status).strip().upper())
            if status is None:
                result.add_error(
                    f"unknown CNAM status {raw_status!r}", "cnam_status"
                )
            else:
                result.cleaned_data["status"] = status
        follow_up = self.validate_date(
            data.get("cnam_follow_up_date"), "cnam_follow_up_date", result
        )
        if follow_up:
            result.cleaned_data["follow_up_date"] = follow_up


_INSTRUMENT_BUILDERS = {
    "CASH": Cash,
    "CHEQUE": Cheque,
    "VIREMENT": BankTransfer,
    "MONDAT": PostalOrder,
    "TRAITE": PromissoryNote,
    "CNAM": NationalInsuranceClaim,
}


def to_payment_instrument(data: Dict[str, Any]) -> PaymentInstrument:
    """
    Convert a stored payment row into its payment instrument.

    Args:
        data: flat row with ``method``, ``amount`` and method-specific columns

    Returns:
        The matching PaymentInstrument variant.

    Raises:
        IngestionError: the row is missing fields its method needs or holds
            values that cannot be converted.
    """
    entity_id = data.get("id")
    entity_id = str(entity_id) if entity_id is not None else None
    result = get_validator("payment").validate(data)
    if not result.is_valid:
        raise IngestionError(entity_id, result.errors)

    fields = dict(result.cleaned_data)
    method = fields.pop("method")
    return _INSTRUMENT_BUILDERS[method](id=entity_id, **fields)


class BillableItemValidator(BaseValidator):
    """Validator for stored device/accessory rows."""

    ALLOWED_KINDS = [kind.value.upper() for kind in LineKind]

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()

        self.validate_required_field(data.get("id"), "id", result)
        raw_kind = data.get("kind")
        kind = self.validate_string(
            raw_kind.upper() if isinstance(raw_kind, str) else raw_kind,
            "kind",
            result,
            allowed_values=self.ALLOWED_KINDS,
        )
        if kind:
            result.cleaned_data["kind"] = LineKind(kind.lower())
        elif raw_kind in (None, ""):
            self.validate_required_field(raw_kind, "kind", result)

        unit_price = self.validate_decimal(
            data.get("unit_price"), "unit_price", result, min_value=Decimal("0")
        )
        if unit_price is None:
            self.validate_required_field(data.get("unit_price"), "unit_price", result)
        else:
            result.cleaned_data["unit_price"] = unit_price

        quantity = self.validate_integer(
            data.get("quantity", 1), "quantity", result, min_value=1
        )
        if quantity is not None:
            result.cleaned_data["quantity"] = quantity

        total_price = self.validate_decimal(
            data.get("total_price"), "total_price", result, min_value=Decimal("0")
        )
        if total_price is not None:
            result.cleaned_data["total_price"] = total_price

        name = self.validate_string(data.get("name"), "name", result, max_length=255)
        result.cleaned_data["name"] = name or ""

        return result


# Factory function to get appropriate validator
def get_validator(record_type: str) -> BaseValidator:
    """Get validator instance for record type."""
    validators = {
        "payment": PaymentRecordValidator(),
        "item": BillableItemValidator(),
    }

    validator = validators.get(record_type.lower())
    if not validator:
        raise ValueError(f"No validator found for record type: {record_type}")

    return validator
