"""bettotals - rolling day/week/month totals per subject in a pinned civil timezone."""

from .core.errors import BetTotalsError, InvalidObservation, NotFound, StorageUnavailable
from .engine import TotalsEngine, create_engine
from .rollups.record import AggregateRecord
from .rollups.time_windows import CalendarResolver, PeriodLabels

__version__ = "0.1.0"

__all__ = [
    "AggregateRecord",
    "BetTotalsError",
    "CalendarResolver",
    "InvalidObservation",
    "NotFound",
    "PeriodLabels",
    "StorageUnavailable",
    "TotalsEngine",
    "__version__",
    "create_engine",
]
