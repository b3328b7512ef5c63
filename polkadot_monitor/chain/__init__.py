"""Chain data access through the Subscan API."""

from polkadot_monitor.chain.api import ChainApi, ChainApiError
from polkadot_monitor.chain.schema import (
    AccountDisplay,
    Nomination,
    NominationsPage,
    Response,
    RewardSlash,
    RewardsSlashesPage,
    Transfer,
    TransfersPage,
)

__all__ = [
    "AccountDisplay",
    "ChainApi",
    "ChainApiError",
    "Nomination",
    "NominationsPage",
    "Response",
    "RewardSlash",
    "RewardsSlashesPage",
    "Transfer",
    "TransfersPage",
]
