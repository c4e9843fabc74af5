from fastapi import Depends

from app.services.grouping_session import GroupingSession, SessionRegistry, get_session_registry


def get_registry() -> SessionRegistry:
    return get_session_registry()


def get_grouping_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> GroupingSession:
    return registry.get(session_id)
