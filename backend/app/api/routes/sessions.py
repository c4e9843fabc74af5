import logging
import random

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_grouping_session, get_registry
from app.core.config import get_settings
from app.schemas.partition import ExclusionPairIn, ExclusionPairOut, FeasibilityOut
from app.schemas.session import (
    CombinationOut,
    GenerateRequest,
    GroupSizeUpdate,
    ItemCreate,
    PartnerCandidatesOut,
    SessionOut,
    SessionResultOut,
)
from app.services.grouping_session import Combination, GroupingSession, SessionRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


def _session_out(session: GroupingSession) -> SessionOut:
    result = session.result
    return SessionOut(
        id=session.id,
        items=session.items,
        group_size=session.group_size,
        constraints=[ExclusionPairOut.model_validate(pair) for pair in session.constraints],
        revision=session.revision,
        feasibility=FeasibilityOut.model_validate(session.feasibility()),
        result=SessionResultOut.model_validate(result) if result is not None else None,
        cursor=session.cursor,
    )


def _combination_out(combination: Combination | None) -> CombinationOut:
    if combination is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No generated combinations")
    return CombinationOut.model_validate(combination)


@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session(registry: SessionRegistry = Depends(get_registry)) -> SessionOut:
    session = registry.create()
    logger.info("SESSION CREATED | session_id=%s", session.id)
    return _session_out(session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    return _session_out(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> None:
    registry.delete(session_id)


@router.post("/sessions/{session_id}/items", response_model=SessionOut)
def add_item(payload: ItemCreate, session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.add_item(payload.name)
    return _session_out(session)


@router.delete("/sessions/{session_id}/items/{name}", response_model=SessionOut)
def remove_item(name: str, session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.remove_item(name)
    return _session_out(session)


@router.put("/sessions/{session_id}/group-size", response_model=SessionOut)
def set_group_size(payload: GroupSizeUpdate, session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.set_group_size(payload.group_size)
    return _session_out(session)


@router.post("/sessions/{session_id}/group-size/increment", response_model=SessionOut)
def increment_group_size(session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.increment_group_size()
    return _session_out(session)


@router.post("/sessions/{session_id}/group-size/decrement", response_model=SessionOut)
def decrement_group_size(session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.decrement_group_size()
    return _session_out(session)


@router.post("/sessions/{session_id}/constraints", response_model=SessionOut)
def add_constraint(payload: ExclusionPairIn, session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.add_constraint(payload.first, payload.second)
    return _session_out(session)


@router.delete("/sessions/{session_id}/constraints/{index}", response_model=SessionOut)
def remove_constraint(index: int, session: GroupingSession = Depends(get_grouping_session)) -> SessionOut:
    session.remove_constraint(index)
    return _session_out(session)


@router.delete("/sessions/{session_id}/constraints", response_model=SessionOut)
def remove_constraint_pair(
    payload: ExclusionPairIn,
    session: GroupingSession = Depends(get_grouping_session),
) -> SessionOut:
    session.remove_constraint((payload.first, payload.second))
    return _session_out(session)


@router.get("/sessions/{session_id}/constraints/candidates", response_model=PartnerCandidatesOut)
def partner_candidates(
    item: str = Query(min_length=1, max_length=100),
    session: GroupingSession = Depends(get_grouping_session),
) -> PartnerCandidatesOut:
    name = item.strip().lower()
    return PartnerCandidatesOut(item=name, candidates=session.partner_candidates(name))


@router.post("/sessions/{session_id}/generate", response_model=SessionResultOut)
def generate(payload: GenerateRequest, session: GroupingSession = Depends(get_grouping_session)) -> SessionResultOut:
    settings = get_settings()
    seed = payload.random_seed if payload.random_seed is not None else settings.repair_random_seed
    result = session.generate(
        payload.mode,
        cap=payload.cap or settings.enumeration_cap,
        scan_limit=payload.scan_limit or settings.enumeration_scan_limit,
        max_attempts=payload.max_attempts or settings.repair_max_attempts,
        rng=random.Random(seed),
    )
    return SessionResultOut.model_validate(result)


@router.get("/sessions/{session_id}/combinations/current", response_model=CombinationOut)
def current_combination(session: GroupingSession = Depends(get_grouping_session)) -> CombinationOut:
    return _combination_out(session.current_combination())


@router.post("/sessions/{session_id}/combinations/next", response_model=CombinationOut)
def next_combination(session: GroupingSession = Depends(get_grouping_session)) -> CombinationOut:
    return _combination_out(session.move_cursor(1))


@router.post("/sessions/{session_id}/combinations/previous", response_model=CombinationOut)
def previous_combination(session: GroupingSession = Depends(get_grouping_session)) -> CombinationOut:
    return _combination_out(session.move_cursor(-1))
