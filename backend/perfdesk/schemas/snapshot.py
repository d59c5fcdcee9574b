from __future__ import annotations

import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class GrowthPoint(_WireModel):
    date: str
    value: float


class SnapshotChart(_WireModel):
    growth: tuple[GrowthPoint, ...] = ()


class SnapshotMeta(_WireModel):
    updated_at: Optional[str] = None


class Snapshot(_WireModel):
    """One immutable result of a successful fetch and parse of the dashboard."""

    source: str
    fetched_at: datetime.datetime
    account_details: dict[str, Optional[str]] = Field(default_factory=dict)
    trading_stats: dict[str, Optional[str]] = Field(default_factory=dict)
    account_info: dict[str, Optional[str]] = Field(default_factory=dict)
    chart: SnapshotChart = Field(default_factory=SnapshotChart)
    meta: SnapshotMeta = Field(default_factory=SnapshotMeta)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SnapshotResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    snapshot: Snapshot
    cached: bool = False
    stale: bool = False

    def to_payload(self) -> dict:
        payload = self.snapshot.to_payload()
        if self.cached:
            payload["cached"] = True
        if self.stale:
            payload["stale"] = True
        return payload
