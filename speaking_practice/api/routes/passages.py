"""
Passage catalog endpoints
"""
from fastapi import APIRouter, Depends
import structlog

from speaking_practice.api.deps import get_passage_catalog, get_session_store
from speaking_practice.api.schemas import PassageDetailResponse, PassageListResponse, PassageResponse
from speaking_practice.domain.errors import PassageNotFound
from speaking_practice.services.passage_service import PassageCatalog
from speaking_practice.services.session_store import SessionStore

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/passages", response_model=PassageListResponse)
async def list_passages(catalog: PassageCatalog = Depends(get_passage_catalog)):
    """List passages newest first with their questions and session counts"""
    passages = await catalog.list_passages()
    return PassageListResponse(passages=[PassageResponse.from_domain(p) for p in passages])


@router.get("/passages/{passage_id}", response_model=PassageDetailResponse)
async def get_passage(
    passage_id: str,
    catalog: PassageCatalog = Depends(get_passage_catalog),
    store: SessionStore = Depends(get_session_store)
):
    """Get one passage with ordered questions and its five most recent sessions"""
    passage = await catalog.get_passage(passage_id)
    if passage is None:
        raise PassageNotFound(passage_id)

    recent_sessions = await store.list_recent_sessions(passage_id, limit=5)
    return PassageDetailResponse(
        passage=PassageResponse.from_domain(passage),
        recent_sessions=recent_sessions
    )
