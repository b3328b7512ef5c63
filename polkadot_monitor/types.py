"""Shared type definitions for polkadot_monitor.

This module contains enums, dataclasses, and type aliases shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum

Timestamp = int
BlockNumber = int


class Network(str, Enum):
    """Relay chain an account lives on."""

    POLKADOT = "polkadot"
    KUSAMA = "kusama"

    def as_str(self) -> str:
        """Return the display name used in reports."""
        return self.value.capitalize()

    @property
    def api_base_url(self) -> str:
        """Return the Subscan API host for this network."""
        return f"https://{self.value}.api.subscan.io"

    @property
    def planck_per_token(self) -> int:
        """Return the number of planck in one token (DOT/KSM)."""
        if self is Network.KUSAMA:
            return 1_000_000_000_000
        return 10_000_000_000


class Module(str, Enum):
    """Scraping/reporting module."""

    TRANSFER = "transfer"
    REWARDS_SLASHES = "rewards_slashes"
    NOMINATIONS = "nominations"


class Occurrence(str, Enum):
    """How often a report is generated."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class ContextId:
    """Identity of a monitored account."""

    stash: str
    network: Network


@dataclass(frozen=True)
class Context:
    """A monitored account.

    Attributes:
        stash: Account (stash) address.
        network: Network the account belongs to.
        description: Free-form label shown in reports.
    """

    stash: str
    network: Network
    description: str = ""

    def id(self) -> ContextId:
        """Return the identity of this context."""
        return ContextId(stash=self.stash, network=self.network)

    def as_str(self) -> str:
        """Return the account address."""
        return self.stash


@dataclass
class StoragePayload:
    """A generated report ready to be uploaded."""

    name: str
    mime_type: str
    body: bytes
    is_public: bool = False


__all__ = [
    "BlockNumber",
    "Context",
    "ContextId",
    "Module",
    "Network",
    "Occurrence",
    "StoragePayload",
    "Timestamp",
]
