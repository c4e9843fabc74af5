import logging
from time import perf_counter

from fastapi import APIRouter

from app.core.config import get_settings
from app.schemas.partition import (
    EnumeratePartitionsRequest,
    EnumerationOut,
    ExclusionPairIn,
    FeasibilityOut,
    FeasibilityRequest,
    RepairOut,
    RepairPartitionRequest,
)
from app.services.constraint_store import ConstraintStore
from app.services.feasibility import check_feasibility
from app.services.partition_enumerator import enumerate_partitions
from app.services.repair_generator import repair_partition

router = APIRouter()
logger = logging.getLogger(__name__)


def _build_store(pairs: list[ExclusionPairIn]) -> ConstraintStore:
    store = ConstraintStore()
    for pair in pairs:
        store.add(pair.first, pair.second)
    return store


@router.post("/feasibility", response_model=FeasibilityOut)
def feasibility(payload: FeasibilityRequest) -> FeasibilityOut:
    return FeasibilityOut.model_validate(check_feasibility(payload.item_count, payload.group_size))


@router.post("/partitions/enumerate", response_model=EnumerationOut)
def enumerate_partitions_route(payload: EnumeratePartitionsRequest) -> EnumerationOut:
    settings = get_settings()
    started = perf_counter()
    result = enumerate_partitions(
        payload.items,
        payload.group_size,
        _build_store(payload.constraints),
        payload.cap or settings.enumeration_cap,
        scan_limit=payload.scan_limit or settings.enumeration_scan_limit,
    )
    logger.info(
        "ENUMERATE REQUEST DONE | items=%s | group_size=%s | returned=%s | truncated=%s | duration_ms=%s",
        len(payload.items),
        payload.group_size,
        result.count,
        result.truncated,
        round((perf_counter() - started) * 1000, 2),
    )
    return EnumerationOut.model_validate(result)


@router.post("/partitions/repair", response_model=RepairOut)
def repair_partition_route(payload: RepairPartitionRequest) -> RepairOut:
    settings = get_settings()
    seed = payload.random_seed if payload.random_seed is not None else settings.repair_random_seed
    result = repair_partition(
        payload.items,
        payload.group_size,
        _build_store(payload.constraints),
        payload.max_attempts or settings.repair_max_attempts,
        random_seed=seed,
    )
    return RepairOut.model_validate(result)
