"""Pydantic models for Subscan API responses.

Only the fields used by storage and reporting are declared; everything
else in the response body is ignored.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

DataT = TypeVar("DataT")


class AccountDisplay(BaseModel):
    """Display information for an account."""

    model_config = ConfigDict(extra="ignore")

    address: str = ""
    display: str = ""
    account_index: str = ""
    identity: bool = False
    parent: str = ""
    parent_display: str = ""


class Transfer(BaseModel):
    """A balance transfer involving a monitored account."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    amount: str = "0"
    block_num: int = 0
    block_timestamp: int = 0
    extrinsic_index: str = ""
    fee: str = "0"
    hash: str = ""
    module: str = ""
    nonce: int = 0
    success: bool = False
    # "from" is a Python keyword
    from_: str = Field(default="", alias="from")
    to: str = ""
    from_account_display: AccountDisplay = Field(default_factory=AccountDisplay)
    to_account_display: AccountDisplay = Field(default_factory=AccountDisplay)


class RewardSlash(BaseModel):
    """A staking reward or slash event."""

    model_config = ConfigDict(extra="ignore")

    account: str = ""
    amount: str = "0"
    block_num: int = 0
    block_timestamp: int = 0
    event_id: str = ""
    event_idx: int = 0
    event_index: str = ""
    extrinsic_hash: str = ""
    extrinsic_idx: int = 0
    module_id: str = ""
    stash: str = ""


class Nomination(BaseModel):
    """A validator nominated by a monitored account."""

    model_config = ConfigDict(extra="ignore")

    bonded_nominators: str = "0"
    bonded_owner: str = "0"
    count_nominators: int = 0
    grandpa_vote: int = 0
    latest_mining: int = 0
    reward_point: int = 0
    stash_account_display: AccountDisplay = Field(default_factory=AccountDisplay)


class TransfersPage(BaseModel):
    """Page of transfers."""

    model_config = ConfigDict(extra="ignore")

    count: int = 0
    transfers: list[Transfer] | None = None

    def entries(self) -> list[Transfer] | None:
        return self.transfers


class RewardsSlashesPage(BaseModel):
    """Page of rewards/slashes."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    count: int = 0
    items: list[RewardSlash] | None = Field(default=None, alias="list")

    def entries(self) -> list[RewardSlash] | None:
        return self.items


class NominationsPage(BaseModel):
    """All validators currently nominated by an account."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    count: int = 0
    items: list[Nomination] | None = Field(default=None, alias="list")

    def entries(self) -> list[Nomination] | None:
        return self.items


class Response(BaseModel, Generic[DataT]):
    """Subscan response envelope.

    Attributes:
        code: 0 on success.
        message: Human readable status.
        generated_at: UNIX timestamp of the response.
        data: Payload.
    """

    model_config = ConfigDict(extra="ignore")

    code: int = 0
    message: str = ""
    generated_at: int = 0
    data: DataT

    def is_empty(self) -> bool:
        """Return True if the page holds no entries list."""
        return self.data.entries() is None  # type: ignore[attr-defined]


__all__ = [
    "AccountDisplay",
    "Nomination",
    "NominationsPage",
    "Response",
    "RewardSlash",
    "RewardsSlashesPage",
    "Transfer",
    "TransfersPage",
]
