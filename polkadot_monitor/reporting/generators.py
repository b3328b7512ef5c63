"""Report generators.

Each generator reads stored entries for the monitored accounts and turns
them into one or more CSV reports:

- transfers: every transfer, plus the summed amount per account
- rewards/slashes: every event converted to DOT/KSM, plus reward and
  slash totals per account
- nominations: every validator nominated by an account

Amounts are summed with Decimal so totals are exact.
"""

from __future__ import annotations

import csv
import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from polkadot_monitor.publishing.base import Publisher
from polkadot_monitor.storage.service import (
    ContextData,
    fetch_nominations,
    fetch_rewards_slashes,
    fetch_transfers,
)
from polkadot_monitor.types import Context, ContextId, Module, StoragePayload

logger = logging.getLogger(__name__)

REPORT_MIME_TYPE = "text/csv"

# Upper bound for "fetch everything" queries (fits a signed 64-bit column)
MAX_INT64 = 2**63 - 1

REWARD_EVENTS = {"Reward", "Rewarded"}
SLASH_EVENTS = {"Slash", "Slashed"}


class ReportError(Exception):
    """Raised when a report cannot be generated."""

    def __init__(self, message: str, code: str = "report_error") -> None:
        """Initialize ReportError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class Report:
    """A generated CSV report.

    Attributes:
        name_template: File name with a ``{date}`` placeholder.
        content: CSV text.
    """

    name_template: str
    content: str

    def to_payload(self, now: datetime | None = None) -> StoragePayload:
        """Convert to an upload payload named after the current time."""
        if now is None:
            now = datetime.now(timezone.utc)
        return StoragePayload(
            name=self.name_template.format(date=now.isoformat(timespec="seconds")),
            mime_type=REPORT_MIME_TYPE,
            body=self.content.encode("utf-8"),
            is_public=False,
        )


def format_amount(value: Decimal) -> str:
    """Render an amount without exponent or trailing zeros."""
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"


def parse_amount(raw: str) -> Decimal:
    """Parse an amount string.

    Raises:
        ReportError: If the string is not a number.
    """
    try:
        return Decimal(raw)
    except InvalidOperation as e:
        raise ReportError(f"Invalid amount '{raw}'", code="invalid_amount") from e


def _csv_writer(buffer: io.StringIO) -> Any:
    return csv.writer(buffer, lineterminator="\n")


def _context_index(contexts: Sequence[Context]) -> dict[ContextId, Context]:
    return {c.id(): c for c in contexts}


def _lookup(index: dict[ContextId, Context], context_id: ContextId) -> Context:
    context = index.get(context_id)
    if context is None:
        raise ReportError(
            "No context found while generating reports", code="unknown_context"
        )
    return context


class ReportGenerator(ABC):
    """Base class for report generators."""

    name: str = "ReportGenerator"
    module: Module

    @abstractmethod
    def fetch_data(
        self, session: Session, contexts: Sequence[Context]
    ) -> list[ContextData[Any]] | None:
        """Read stored entries; None if there is nothing to report."""

    @abstractmethod
    def generate(
        self, data: list[ContextData[Any]], contexts: Sequence[Context]
    ) -> list[Report]:
        """Render reports from stored entries."""

    def publish(self, publisher: Publisher, info: Any, report: Report) -> None:
        """Upload a single report."""
        publisher.upload_data(info, report.to_payload())
        logger.info("%s: Uploaded new report", self.name)

    def _log_fetched(self, data: list[ContextData[Any]]) -> None:
        logger.debug("%s: Fetched %d entries from database", self.name, len(data))


class TransferReportGenerator(ReportGenerator):
    name = "TransferReportGenerator"
    module = Module.TRANSFER

    def fetch_data(
        self, session: Session, contexts: Sequence[Context]
    ) -> list[ContextData[Any]] | None:
        # Simply fetch everything as of now
        data = fetch_transfers(session, contexts, 0, MAX_INT64)
        if not data:
            return None
        self._log_fetched(data)
        return list(data)

    def generate(
        self, data: list[ContextData[Any]], contexts: Sequence[Context]
    ) -> list[Report]:
        if not data:
            return []

        logger.debug(
            "%s: Generating reports of %d database entries", self.name, len(data)
        )

        index = _context_index(contexts)
        all_buf = io.StringIO()
        all_writer = _csv_writer(all_buf)
        all_writer.writerow(
            [
                "Block Number",
                "Block Timestamp",
                "From",
                "To",
                "Amount",
                "Extrinsic Index",
                "Success",
            ]
        )
        summary: dict[Context, Decimal] = {}

        for entry in data:
            context = _lookup(index, entry.context_id)
            transfer = entry.data
            amount = parse_amount(transfer.amount)

            all_writer.writerow(
                [
                    transfer.block_num,
                    transfer.block_timestamp,
                    transfer.from_,
                    transfer.to,
                    transfer.amount,
                    transfer.extrinsic_index,
                    str(transfer.success).lower(),
                ]
            )
            summary[context] = summary.get(context, Decimal(0)) + amount

        summary_buf = io.StringIO()
        summary_writer = _csv_writer(summary_buf)
        summary_writer.writerow(["Network", "Address", "Description", "Amount"])
        for context, amount in summary.items():
            summary_writer.writerow(
                [
                    context.network.as_str(),
                    context.stash,
                    context.description,
                    format_amount(amount),
                ]
            )

        return [
            Report("report_transfer_all_{date}.csv", all_buf.getvalue()),
            Report("report_transfer_summary_{date}.csv", summary_buf.getvalue()),
        ]


class RewardSlashReportGenerator(ReportGenerator):
    name = "RewardSlashReportGenerator"
    module = Module.REWARDS_SLASHES

    def fetch_data(
        self, session: Session, contexts: Sequence[Context]
    ) -> list[ContextData[Any]] | None:
        data = fetch_rewards_slashes(session, contexts, 0, MAX_INT64)
        if not data:
            return None
        self._log_fetched(data)
        return list(data)

    def generate(
        self, data: list[ContextData[Any]], contexts: Sequence[Context]
    ) -> list[Report]:
        if not data:
            return []

        logger.debug(
            "%s: Generating reports of %d database entries", self.name, len(data)
        )

        index = _context_index(contexts)
        all_buf = io.StringIO()
        all_writer = _csv_writer(all_buf)
        all_writer.writerow(
            ["Network", "Block Number", "Address", "Description", "Event", "Value"]
        )
        # context -> (reward, slash)
        summary: dict[Context, tuple[Decimal, Decimal]] = {}

        for entry in data:
            context = _lookup(index, entry.context_id)
            event = entry.data
            amount = parse_amount(event.amount) / context.network.planck_per_token

            if event.event_id in REWARD_EVENTS:
                is_reward = True
            elif event.event_id in SLASH_EVENTS:
                is_reward = False
            else:
                raise ReportError(
                    f"Received unknown event id '{event.event_id}'",
                    code="unknown_event",
                )

            all_writer.writerow(
                [
                    context.network.as_str(),
                    event.block_num,
                    context.stash,
                    context.description,
                    event.event_id,
                    format_amount(amount),
                ]
            )

            reward, slash = summary.get(context, (Decimal(0), Decimal(0)))
            if is_reward:
                reward += amount
            else:
                slash += amount
            summary[context] = (reward, slash)

        summary_buf = io.StringIO()
        summary_writer = _csv_writer(summary_buf)
        summary_writer.writerow(["Network", "Address", "Description", "Reward", "Slash"])
        for context, (reward, slash) in summary.items():
            summary_writer.writerow(
                [
                    context.network.as_str(),
                    context.stash,
                    context.description,
                    format_amount(reward),
                    format_amount(slash),
                ]
            )

        return [
            Report("rewards_slashes_all_{date}.csv", all_buf.getvalue()),
            Report("rewards_slashes_summary_{date}.csv", summary_buf.getvalue()),
        ]


class NominationReportGenerator(ReportGenerator):
    name = "NominationReportGenerator"
    module = Module.NOMINATIONS

    def fetch_data(
        self, session: Session, contexts: Sequence[Context]
    ) -> list[ContextData[Any]] | None:
        data = fetch_nominations(session, contexts)
        if not data:
            return None
        self._log_fetched(data)
        return list(data)

    def generate(
        self, data: list[ContextData[Any]], contexts: Sequence[Context]
    ) -> list[Report]:
        if not data:
            return []

        logger.debug(
            "%s: Generating reports of %d database entries", self.name, len(data)
        )

        index = _context_index(contexts)
        buf = io.StringIO()
        writer = _csv_writer(buf)
        writer.writerow(
            [
                "Detected",
                "Network",
                "Address",
                "Description",
                "Validator",
                "Display Name",
            ]
        )

        for entry in data:
            context = _lookup(index, entry.context_id)
            validator = entry.data.stash_account_display
            detected = datetime.fromtimestamp(entry.timestamp, tz=timezone.utc)
            writer.writerow(
                [
                    detected.isoformat(),
                    context.network.as_str(),
                    context.stash,
                    context.description,
                    validator.address,
                    validator.display,
                ]
            )

        return [Report("{date}_nominations.csv", buf.getvalue())]


GENERATORS: dict[Module, type[ReportGenerator]] = {
    Module.TRANSFER: TransferReportGenerator,
    Module.REWARDS_SLASHES: RewardSlashReportGenerator,
    Module.NOMINATIONS: NominationReportGenerator,
}


__all__ = [
    "GENERATORS",
    "NominationReportGenerator",
    "Report",
    "ReportError",
    "ReportGenerator",
    "RewardSlashReportGenerator",
    "TransferReportGenerator",
    "format_amount",
    "parse_amount",
]
