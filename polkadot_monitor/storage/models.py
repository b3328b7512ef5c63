"""ORM models for scraped chain data and report checkpoints.

Every raw record carries the context id (stash, network) of the account it
was scraped for, plus the UNIX time it was first stored. The unique indexes
are what makes storing a page idempotent.
"""

from datetime import date

from sqlalchemy import BigInteger, Boolean, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from polkadot_monitor.chain.schema import (
    AccountDisplay,
    Nomination,
    RewardSlash,
    Transfer,
)
from polkadot_monitor.db import Base
from polkadot_monitor.types import ContextId, Network


class ContextMixin:
    """Columns shared by all raw records."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    network: Mapped[str] = mapped_column(String(20), nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def context_id(self) -> ContextId:
        """Return the context this record was scraped for."""
        return ContextId(stash=self.stash, network=Network(self.network))


class TransferRecord(ContextMixin, Base):
    """ORM model for a stored transfer.

    Attributes:
        extrinsic_index: Unique per context, e.g. '5894712-2'.
        block_num: Block the transfer was included in.
        block_timestamp: UNIX time of that block.
        amount: Amount as reported by Subscan (decimal string).
    """

    __tablename__ = "raw_transfers"

    extrinsic_index: Mapped[str] = mapped_column(String(64), nullable=False)
    block_num: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    block_timestamp: Mapped[int] = mapped_column(
        BigInteger, nullable=False, index=True
    )
    amount: Mapped[str] = mapped_column(String(64), nullable=False)
    fee: Mapped[str] = mapped_column(String(64), nullable=False, default="0")
    hash: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    module: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    nonce: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    from_address: Mapped[str] = mapped_column(String(64), nullable=False)
    to_address: Mapped[str] = mapped_column(String(64), nullable=False)
    from_display: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    to_display: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    __table_args__ = (
        Index(
            "ix_raw_transfers_context_extrinsic",
            "stash",
            "network",
            "extrinsic_index",
            unique=True,
        ),
    )

    @classmethod
    def from_entry(
        cls, context_id: ContextId, timestamp: int, entry: Transfer
    ) -> "TransferRecord":
        return cls(
            stash=context_id.stash,
            network=context_id.network.value,
            timestamp=timestamp,
            extrinsic_index=entry.extrinsic_index,
            block_num=entry.block_num,
            block_timestamp=entry.block_timestamp,
            amount=entry.amount,
            fee=entry.fee,
            hash=entry.hash,
            module=entry.module,
            nonce=entry.nonce,
            success=entry.success,
            from_address=entry.from_,
            to_address=entry.to,
            from_display=entry.from_account_display.display,
            to_display=entry.to_account_display.display,
        )

    def to_entry(self) -> Transfer:
        return Transfer(
            extrinsic_index=self.extrinsic_index,
            block_num=self.block_num,
            block_timestamp=self.block_timestamp,
            amount=self.amount,
            fee=self.fee,
            hash=self.hash,
            module=self.module,
            nonce=self.nonce,
            success=self.success,
            from_=self.from_address,
            to=self.to_address,
            from_account_display=AccountDisplay(
                address=self.from_address, display=self.from_display
            ),
            to_account_display=AccountDisplay(
                address=self.to_address, display=self.to_display
            ),
        )

    def __repr__(self) -> str:
        """Return string representation of TransferRecord."""
        return (
            f"<TransferRecord(id={self.id}, stash='{self.stash}', "
            f"extrinsic_index='{self.extrinsic_index}')>"
        )


class RewardSlashRecord(ContextMixin, Base):
    """ORM model for a stored reward or slash event."""

    __tablename__ = "raw_rewards_slashes"

    extrinsic_hash: Mapped[str] = mapped_column(String(100), nullable=False)
    block_num: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    block_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_id: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[str] = mapped_column(String(64), nullable=False)
    account: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    event_idx: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    event_index: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    extrinsic_idx: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    module_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    reward_stash: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    __table_args__ = (
        Index(
            "ix_raw_rewards_slashes_context_extrinsic",
            "stash",
            "network",
            "extrinsic_hash",
            unique=True,
        ),
    )

    @classmethod
    def from_entry(
        cls, context_id: ContextId, timestamp: int, entry: RewardSlash
    ) -> "RewardSlashRecord":
        return cls(
            stash=context_id.stash,
            network=context_id.network.value,
            timestamp=timestamp,
            extrinsic_hash=entry.extrinsic_hash,
            block_num=entry.block_num,
            block_timestamp=entry.block_timestamp,
            event_id=entry.event_id,
            amount=entry.amount,
            account=entry.account,
            event_idx=entry.event_idx,
            event_index=entry.event_index,
            extrinsic_idx=entry.extrinsic_idx,
            module_id=entry.module_id,
            reward_stash=entry.stash,
        )

    def to_entry(self) -> RewardSlash:
        return RewardSlash(
            extrinsic_hash=self.extrinsic_hash,
            block_num=self.block_num,
            block_timestamp=self.block_timestamp,
            event_id=self.event_id,
            amount=self.amount,
            account=self.account,
            event_idx=self.event_idx,
            event_index=self.event_index,
            extrinsic_idx=self.extrinsic_idx,
            module_id=self.module_id,
            stash=self.reward_stash,
        )


class NominationRecord(ContextMixin, Base):
    """ORM model for a validator nominated by a monitored account."""

    __tablename__ = "raw_nominations"

    validator: Mapped[str] = mapped_column(String(64), nullable=False)
    validator_display: Mapped[str] = mapped_column(
        String(200), nullable=False, default=""
    )
    bonded_nominators: Mapped[str] = mapped_column(
        String(64), nullable=False, default="0"
    )
    bonded_owner: Mapped[str] = mapped_column(String(64), nullable=False, default="0")
    count_nominators: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_point: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        Index(
            "ix_raw_nominations_context_validator",
            "stash",
            "network",
            "validator",
            unique=True,
        ),
    )

    @classmethod
    def from_entry(
        cls, context_id: ContextId, timestamp: int, entry: Nomination
    ) -> "NominationRecord":
        return cls(
            stash=context_id.stash,
            network=context_id.network.value,
            timestamp=timestamp,
            validator=entry.stash_account_display.address,
            validator_display=entry.stash_account_display.display,
            bonded_nominators=entry.bonded_nominators,
            bonded_owner=entry.bonded_owner,
            count_nominators=entry.count_nominators,
            reward_point=entry.reward_point,
        )

    def to_entry(self) -> Nomination:
        return Nomination(
            bonded_nominators=self.bonded_nominators,
            bonded_owner=self.bonded_owner,
            count_nominators=self.count_nominators,
            reward_point=self.reward_point,
            stash_account_display=AccountDisplay(
                address=self.validator, display=self.validator_display
            ),
        )


class ReportCheckpoint(Base):
    """Last day a report job has covered.

    Attributes:
        module: Report module (transfer, rewards_slashes, nominations).
        occurrence: daily, weekly or monthly.
        last_day: The reference day the last report was generated for.
    """

    __tablename__ = "report_checkpoints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    module: Mapped[str] = mapped_column(String(30), nullable=False)
    occurrence: Mapped[str] = mapped_column(String(20), nullable=False)
    last_day: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        Index(
            "ix_report_checkpoints_module_occurrence",
            "module",
            "occurrence",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        """Return string representation of ReportCheckpoint."""
        return (
            f"<ReportCheckpoint(module='{self.module}', "
            f"occurrence='{self.occurrence}', last_day={self.last_day})>"
        )


__all__ = [
    "NominationRecord",
    "ReportCheckpoint",
    "RewardSlashRecord",
    "TransferRecord",
]
