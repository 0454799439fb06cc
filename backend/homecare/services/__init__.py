# Services package initialization
# This file makes the services directory a Python package
# and allows importing service modules

from . import calendar_aggregator
from . import obligations
from . import reconciliation
from . import snapshot_service
from . import stats

__all__ = [
    "calendar_aggregator",
    "obligations",
    "reconciliation",
    "snapshot_service",
    "stats",
]
