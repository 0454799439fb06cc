"""Home-care equipment billing: payment reconciliation and obligation engine."""

__version__ = "1.0.0"
