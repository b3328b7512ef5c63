"""Report generation from stored chain data."""

from polkadot_monitor.reporting.generators import (
    GENERATORS,
    NominationReportGenerator,
    Report,
    ReportError,
    ReportGenerator,
    RewardSlashReportGenerator,
    TransferReportGenerator,
)
from polkadot_monitor.reporting.service import ReportService

__all__ = [
    "GENERATORS",
    "NominationReportGenerator",
    "Report",
    "ReportError",
    "ReportGenerator",
    "ReportService",
    "RewardSlashReportGenerator",
    "TransferReportGenerator",
]
