"""Storage service for scraped chain data.

This module provides high-level APIs over the raw tables:
- store_*_event(): Insert the unseen entries of a page, return how many
- fetch_*(): Read stored entries back for reporting
- fetch_checkpoint_offset() / update_checkpoint(): Report progress

Stores never update an existing row; an entry already stored for the same
context is skipped, so storing the same page twice inserts nothing.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Generic, TypeVar

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from polkadot_monitor.chain.schema import (
    Nomination,
    NominationsPage,
    Response,
    RewardSlash,
    RewardsSlashesPage,
    Transfer,
    TransfersPage,
)
from polkadot_monitor.storage.models import (
    NominationRecord,
    ReportCheckpoint,
    RewardSlashRecord,
    TransferRecord,
)
from polkadot_monitor.types import (
    BlockNumber,
    Context,
    ContextId,
    Module,
    Occurrence,
    Timestamp,
)

logger = logging.getLogger(__name__)

# Counting starts here when a report job has never run
CHECKPOINT_EPOCH = date(1971, 1, 1)

# One month is always 31 days, even if there's some overlap
DAYS_PER_MONTH = 31

T = TypeVar("T")


class StorageError(Exception):
    """Raised when data cannot be stored or read."""

    def __init__(self, message: str, code: str = "storage_error") -> None:
        """Initialize StorageError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class ContextData(Generic[T]):
    """A stored entry together with the account it was scraped for."""

    context_id: ContextId
    timestamp: Timestamp
    data: T


def _context_filter(model: type, contexts: Sequence[Context]):  # type: ignore[no-untyped-def]
    ids = {c.id() for c in contexts}
    return or_(
        *(
            and_(model.stash == cid.stash, model.network == cid.network.value)  # type: ignore[attr-defined]
            for cid in ids
        )
    )


def store_transfer_event(
    session: Session,
    context: Context,
    data: Response[TransfersPage],
) -> int:
    """Store the transfers of a page for an account.

    Args:
        session: Database session.
        context: Account the page was requested for.
        data: Subscan response.

    Returns:
        Number of newly inserted transfers.

    Raises:
        StorageError: If the response holds no transfers list.
    """
    transfers = data.data.transfers
    if transfers is None:
        raise StorageError("No transfers found in response body", code="empty_page")

    context_id = context.id()
    now = int(time.time())
    count = 0

    for transfer in transfers:
        stmt = select(TransferRecord.id).where(
            TransferRecord.stash == context_id.stash,
            TransferRecord.network == context_id.network.value,
            TransferRecord.extrinsic_index == transfer.extrinsic_index,
        )
        if session.execute(stmt).first() is not None:
            continue

        session.add(TransferRecord.from_entry(context_id, now, transfer))
        # Flush so duplicates within the same page are detected
        session.flush()
        logger.debug(
            "Added new transfer to database for %s: %s",
            context.stash,
            transfer.extrinsic_index,
        )
        count += 1

    return count


def store_reward_slash_event(
    session: Session,
    context: Context,
    data: Response[RewardsSlashesPage],
) -> int:
    """Store the rewards/slashes of a page for an account.

    Args:
        session: Database session.
        context: Account the page was requested for.
        data: Subscan response.

    Returns:
        Number of newly inserted entries.

    Raises:
        StorageError: If the response holds no rewards/slashes list.
    """
    entries = data.data.items
    if entries is None:
        raise StorageError(
            "No rewards/slashes found in response body", code="empty_page"
        )

    context_id = context.id()
    now = int(time.time())
    count = 0

    for entry in entries:
        stmt = select(RewardSlashRecord.id).where(
            RewardSlashRecord.stash == context_id.stash,
            RewardSlashRecord.network == context_id.network.value,
            RewardSlashRecord.extrinsic_hash == entry.extrinsic_hash,
        )
        if session.execute(stmt).first() is not None:
            continue

        session.add(RewardSlashRecord.from_entry(context_id, now, entry))
        session.flush()
        logger.debug(
            "Added new reward/slash to database for %s: %s",
            context.stash,
            entry.extrinsic_hash,
        )
        count += 1

    return count


def store_nomination_event(
    session: Session,
    context: Context,
    data: Response[NominationsPage],
) -> int:
    """Store the nominated validators of an account.

    Args:
        session: Database session.
        context: Account the nominations were requested for.
        data: Subscan response.

    Returns:
        Number of newly inserted nominations.

    Raises:
        StorageError: If the response holds no nominations list.
    """
    entries = data.data.items
    if entries is None:
        raise StorageError("No nominations found in response body", code="empty_page")

    context_id = context.id()
    now = int(time.time())
    count = 0

    for entry in entries:
        validator = entry.stash_account_display.address
        stmt = select(NominationRecord.id).where(
            NominationRecord.stash == context_id.stash,
            NominationRecord.network == context_id.network.value,
            NominationRecord.validator == validator,
        )
        if session.execute(stmt).first() is not None:
            continue

        session.add(NominationRecord.from_entry(context_id, now, entry))
        session.flush()
        logger.debug(
            "Added new nomination to database for %s: %s", context.stash, validator
        )
        count += 1

    return count


def fetch_transfers(
    session: Session,
    contexts: Sequence[Context],
    from_ts: Timestamp,
    to_ts: Timestamp,
) -> list[ContextData[Transfer]]:
    """Fetch stored transfers within a block time range.

    Args:
        session: Database session.
        contexts: Accounts to include.
        from_ts: Inclusive lower bound on block_timestamp.
        to_ts: Inclusive upper bound on block_timestamp.

    Returns:
        Transfers ordered by block number, newest first.
    """
    if not contexts:
        return []

    stmt = (
        select(TransferRecord)
        .where(
            _context_filter(TransferRecord, contexts),
            TransferRecord.block_timestamp >= from_ts,
            TransferRecord.block_timestamp <= to_ts,
        )
        .order_by(TransferRecord.block_num.desc(), TransferRecord.id)
    )

    return [
        ContextData(context_id=r.context_id(), timestamp=r.timestamp, data=r.to_entry())
        for r in session.execute(stmt).scalars()
    ]


def fetch_rewards_slashes(
    session: Session,
    contexts: Sequence[Context],
    from_block: BlockNumber,
    to_block: BlockNumber,
) -> list[ContextData[RewardSlash]]:
    """Fetch stored rewards/slashes within a block range.

    Args:
        session: Database session.
        contexts: Accounts to include.
        from_block: Inclusive lower bound on block_num.
        to_block: Inclusive upper bound on block_num.

    Returns:
        Entries in insertion order.
    """
    if not contexts:
        return []

    stmt = (
        select(RewardSlashRecord)
        .where(
            _context_filter(RewardSlashRecord, contexts),
            RewardSlashRecord.block_num >= from_block,
            RewardSlashRecord.block_num <= to_block,
        )
        .order_by(RewardSlashRecord.id)
    )

    return [
        ContextData(context_id=r.context_id(), timestamp=r.timestamp, data=r.to_entry())
        for r in session.execute(stmt).scalars()
    ]


def fetch_nominations(
    session: Session,
    contexts: Sequence[Context],
) -> list[ContextData[Nomination]]:
    """Fetch all stored nominations of the given accounts."""
    if not contexts:
        return []

    stmt = (
        select(NominationRecord)
        .where(_context_filter(NominationRecord, contexts))
        .order_by(NominationRecord.id)
    )

    return [
        ContextData(context_id=r.context_id(), timestamp=r.timestamp, data=r.to_entry())
        for r in session.execute(stmt).scalars()
    ]


def _periods_between(start: date, end: date, occurrence: Occurrence) -> int:
    days = (end - start).days
    if occurrence == Occurrence.DAILY:
        return days
    if occurrence == Occurrence.WEEKLY:
        # Truncate toward zero like a signed duration
        return int(days / 7)
    return int(days / DAYS_PER_MONTH)


def _get_checkpoint(
    session: Session, module: Module, occurrence: Occurrence
) -> ReportCheckpoint | None:
    stmt = select(ReportCheckpoint).where(
        ReportCheckpoint.module == module.value,
        ReportCheckpoint.occurrence == occurrence.value,
    )
    return session.execute(stmt).scalars().first()


def reference_day(today: date | None = None) -> date:
    """Return the last complete UTC day, the day reports are generated up to."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    return today - timedelta(days=1)


def fetch_checkpoint_offset(
    session: Session,
    module: Module,
    occurrence: Occurrence,
    today: date | None = None,
) -> int:
    """Return how many periods have passed since a report job last ran.

    The reference day is yesterday. Without a stored checkpoint the offset
    is counted from 1971-01-01.

    Args:
        session: Database session.
        module: Report module.
        occurrence: Report cadence.
        today: Override of the current day (tests).

    Returns:
        Number of whole days, weeks or 31-day months.

    Raises:
        StorageError: If the checkpoint lies after the reference day.
    """
    ref = reference_day(today)
    checkpoint = _get_checkpoint(session, module, occurrence)
    start = checkpoint.last_day if checkpoint is not None else CHECKPOINT_EPOCH

    offset = _periods_between(start, ref, occurrence)
    if offset < 0:
        raise StorageError(
            "the calculated checkpoint offset is below zero",
            code="negative_offset",
        )

    return offset


def update_checkpoint(
    session: Session,
    module: Module,
    occurrence: Occurrence,
    day: date,
) -> ReportCheckpoint:
    """Record that a report job has covered everything up to ``day``."""
    checkpoint = _get_checkpoint(session, module, occurrence)
    if checkpoint is None:
        checkpoint = ReportCheckpoint(
            module=module.value, occurrence=occurrence.value, last_day=day
        )
        session.add(checkpoint)
    else:
        checkpoint.last_day = day

    session.flush()
    logger.debug(
        "Checkpoint for %s/%s set to %s", module.value, occurrence.value, day
    )
    return checkpoint


__all__ = [
    "CHECKPOINT_EPOCH",
    "ContextData",
    "StorageError",
    "fetch_checkpoint_offset",
    "fetch_nominations",
    "fetch_rewards_slashes",
    "fetch_transfers",
    "reference_day",
    "store_nomination_event",
    "store_reward_slash_event",
    "store_transfer_event",
    "update_checkpoint",
]
