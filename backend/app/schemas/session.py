from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.partition import EnumerationOut, ExclusionPairOut, FeasibilityOut, RepairOut


class ItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class GroupSizeUpdate(BaseModel):
    group_size: int = Field(ge=1, le=1000)


class GenerateRequest(BaseModel):
    mode: Literal["exhaustive", "repair"] = "exhaustive"
    cap: int | None = Field(default=None, ge=1, le=100_000)
    scan_limit: int | None = Field(default=None, ge=1)
    max_attempts: int | None = Field(default=None, ge=1, le=100_000)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)


class SessionResultOut(BaseModel):
    mode: Literal["exhaustive", "repair"]
    revision: int
    enumeration: EnumerationOut | None = None
    repair: RepairOut | None = None

    model_config = {"from_attributes": True}


class SessionOut(BaseModel):
    id: str
    items: list[str]
    group_size: int
    constraints: list[ExclusionPairOut]
    revision: int
    feasibility: FeasibilityOut
    result: SessionResultOut | None = None
    cursor: int = 0


class CombinationOut(BaseModel):
    index: int
    total: int
    groups: list[list[str]]

    model_config = {"from_attributes": True}


class PartnerCandidatesOut(BaseModel):
    item: str
    candidates: list[str]
