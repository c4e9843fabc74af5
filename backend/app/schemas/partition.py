from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ExclusionPairIn(BaseModel):
    first: str = Field(min_length=1, max_length=100)
    second: str = Field(min_length=1, max_length=100)

    @field_validator("first", "second")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        name = value.strip().lower()
        if not name:
            raise ValueError("Names must not be blank")
        return name


class ExclusionPairOut(BaseModel):
    first: str
    second: str

    model_config = {"from_attributes": True}


class FeasibilityRequest(BaseModel):
    item_count: int = Field(ge=0, le=100_000)
    group_size: int = Field(ge=1, le=100_000)


class FeasibilityOut(BaseModel):
    feasible: bool
    max_group_size: int
    missing_count: int
    possible_groups: int

    model_config = {"from_attributes": True}


class PartitionRequestBase(BaseModel):
    items: list[str] = Field(max_length=200)
    group_size: int = Field(ge=1, le=200)
    constraints: list[ExclusionPairIn] = Field(default_factory=list, max_length=2000)

    @field_validator("items")
    @classmethod
    def strip_items(cls, value: list[str]) -> list[str]:
        return [item.strip().lower() for item in value]


class EnumeratePartitionsRequest(PartitionRequestBase):
    cap: int | None = Field(default=None, ge=1, le=100_000)
    scan_limit: int | None = Field(default=None, ge=1)


class RepairPartitionRequest(PartitionRequestBase):
    max_attempts: int | None = Field(default=None, ge=1, le=100_000)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)


class TruncationOut(BaseModel):
    total: int
    cap: int

    model_config = {"from_attributes": True}


class EnumerationOut(BaseModel):
    partitions: list[list[list[str]]]
    count: int
    pre_filter_total: int
    scanned: int
    truncated: bool
    truncation: TruncationOut | None = None
    scan_limit_reached: bool = False
    elapsed_ms: float = 0.0

    model_config = {"from_attributes": True}


class RepairOut(BaseModel):
    partition: list[list[str]]
    violation_count: int
    attempts: int
    degraded: bool

    model_config = {"from_attributes": True}
