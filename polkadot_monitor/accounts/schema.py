"""Pydantic models for the YAML configuration files.

Two files are mounted into the container under config/:

- accounts.yml: the monitored accounts (stash, network, description)
- config.yml: which scraping and reporting modules run, and where
  reports are published
"""

import re
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from polkadot_monitor.types import Context, Module, Network, Occurrence

# SS58 addresses are base58 encoded
SS58_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,64}$")


class AccountSchema(BaseModel):
    """Schema for a single monitored account.

    Attributes:
        stash: Stash address (SS58).
        network: polkadot or kusama.
        description: Label shown in reports.
    """

    model_config = ConfigDict(extra="forbid")

    stash: str = Field(description="Stash address")
    network: Network = Field(default=Network.POLKADOT, description="Network")
    description: str = Field(default="", description="Label shown in reports")

    @field_validator("stash")
    @classmethod
    def validate_stash(cls, v: str) -> str:
        """Validate stash looks like an SS58 address."""
        v = v.strip()
        if not SS58_PATTERN.match(v):
            raise ValueError(f"stash must be an SS58 address, got '{v}'")
        return v

    def to_context(self) -> Context:
        """Convert to the runtime Context type."""
        return Context(
            stash=self.stash, network=self.network, description=self.description
        )


class AccountsFileSchema(BaseModel):
    """Schema for accounts.yml."""

    model_config = ConfigDict(extra="forbid")

    accounts: list[AccountSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique(self) -> "AccountsFileSchema":
        """Reject the same (stash, network) pair listed twice."""
        seen: set[tuple[str, Network]] = set()
        for account in self.accounts:
            key = (account.stash, account.network)
            if key in seen:
                raise ValueError(
                    f"account {account.stash} ({account.network.value}) "
                    "is listed multiple times"
                )
            seen.add(key)
        return self

    def contexts(self) -> list[Context]:
        """Return all accounts as Context instances."""
        return [account.to_context() for account in self.accounts]


class ScrapingSchema(BaseModel):
    """Schema for the scraping section of config.yml."""

    model_config = ConfigDict(extra="forbid")

    modules: list[Module] = Field(default_factory=list)

    @field_validator("modules")
    @classmethod
    def validate_unique_modules(cls, v: list[Module]) -> list[Module]:
        """Reject a module listed twice."""
        if len(set(v)) != len(v):
            raise ValueError("configuration contains the same module multiple times")
        return v


class ReportJobSchema(BaseModel):
    """Schema for a single report job."""

    model_config = ConfigDict(extra="forbid")

    module: Module
    occurrence: Occurrence = Occurrence.DAILY


class GoogleStoragePublisherSchema(BaseModel):
    """Publisher uploading to a Google Cloud Storage bucket."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["google_storage"]
    bucket_name: str = Field(min_length=1)
    service_account: Path = Field(description="Path to the service account key")


class DirectoryPublisherSchema(BaseModel):
    """Publisher writing reports into a local directory."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["directory"]
    path: Path


PublisherSchema = Annotated[
    GoogleStoragePublisherSchema | DirectoryPublisherSchema,
    Field(discriminator="type"),
]


class ReportingSchema(BaseModel):
    """Schema for the reporting section of config.yml."""

    model_config = ConfigDict(extra="forbid")

    modules: list[ReportJobSchema] = Field(default_factory=list)
    publisher: PublisherSchema

    @field_validator("modules")
    @classmethod
    def validate_unique_jobs(
        cls, v: list[ReportJobSchema]
    ) -> list[ReportJobSchema]:
        """Reject the same (module, occurrence) job listed twice."""
        keys = [(job.module, job.occurrence) for job in v]
        if len(set(keys)) != len(keys):
            raise ValueError("configuration contains the same module multiple times")
        return v


class MonitorConfigSchema(BaseModel):
    """Schema for config.yml.

    Omitting a section disables the corresponding service.
    """

    model_config = ConfigDict(extra="forbid")

    scraping: ScrapingSchema | None = None
    reporting: ReportingSchema | None = None


__all__ = [
    "AccountSchema",
    "AccountsFileSchema",
    "DirectoryPublisherSchema",
    "GoogleStoragePublisherSchema",
    "MonitorConfigSchema",
    "PublisherSchema",
    "ReportJobSchema",
    "ReportingSchema",
    "ScrapingSchema",
]
