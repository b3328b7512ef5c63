"""Persistence of scraped chain data.

This module handles:
- ORM models for transfers, rewards/slashes, nominations and checkpoints
- Idempotent storing of Subscan pages per account
- Reading stored entries back for report generation
"""

from polkadot_monitor.storage.models import (
    NominationRecord,
    ReportCheckpoint,
    RewardSlashRecord,
    TransferRecord,
)
from polkadot_monitor.storage.service import (
    ContextData,
    StorageError,
    fetch_checkpoint_offset,
    fetch_nominations,
    fetch_rewards_slashes,
    fetch_transfers,
    reference_day,
    store_nomination_event,
    store_reward_slash_event,
    store_transfer_event,
    update_checkpoint,
)

__all__ = [
    # Models
    "NominationRecord",
    "ReportCheckpoint",
    "RewardSlashRecord",
    "TransferRecord",
    # Service
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
