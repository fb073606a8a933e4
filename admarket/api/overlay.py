"""Overlay endpoints: transaction submission and advertisement lookup."""
import logging

from fastapi import APIRouter, Depends

from admarket.api.deps import get_overlay_engine
from admarket.core.exceptions import (
    InvalidLookupQueryError,
    InvalidTransactionBundleError,
    OverlayServiceNotFoundError,
)
from admarket.schemas.common import ErrorResponse
from admarket.schemas.overlay import LookupQuestion, TaggedBEEF
from admarket.services.lookup_service import LookupQueryError
from admarket.services.overlay_engine import OverlayEngine, UnknownServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/overlay", tags=["overlay"])


@router.post("/submit", responses={400: {"model": ErrorResponse}})
async def submit_transaction(
    req: TaggedBEEF,
    engine: OverlayEngine = Depends(get_overlay_engine),
):
    """Submit a BEEF transaction to one or more topics. Returns the STEAK."""
    try:
        beef = bytes.fromhex(req.beef)
    except ValueError as e:
        raise InvalidTransactionBundleError(str(e))
    try:
        steak = await engine.submit(beef, req.topics)
    except ValueError as e:
        raise InvalidTransactionBundleError(str(e))
    return {topic: instructions.model_dump(by_alias=True) for topic, instructions in steak.items()}


@router.post("/lookup", responses={400: {"model": ErrorResponse}})
async def lookup(
    question: LookupQuestion,
    engine: OverlayEngine = Depends(get_overlay_engine),
):
    """Answer a lookup question. ``findAll`` returns an output list, other queries a list of references."""
    try:
        answer = await engine.lookup(question)
    except LookupQueryError as e:
        raise InvalidLookupQueryError(str(e))
    return answer.to_wire()


@router.get("/topics")
async def list_topic_managers(engine: OverlayEngine = Depends(get_overlay_engine)):
    metadata = await engine.list_topic_managers()
    return {name: meta.model_dump(by_alias=True, exclude_none=True) for name, meta in metadata.items()}


@router.get("/lookup-services")
async def list_lookup_services(engine: OverlayEngine = Depends(get_overlay_engine)):
    metadata = await engine.list_lookup_services()
    return {name: meta.model_dump(by_alias=True, exclude_none=True) for name, meta in metadata.items()}


@router.get("/topics/{name}/docs", responses={404: {"model": ErrorResponse}})
async def topic_manager_docs(name: str, engine: OverlayEngine = Depends(get_overlay_engine)):
    try:
        manager = engine.get_topic_manager(name)
    except UnknownServiceError as e:
        raise OverlayServiceNotFoundError(str(e))
    return {"name": name, "documentation": await manager.get_documentation()}


@router.get("/lookup-services/{name}/docs", responses={404: {"model": ErrorResponse}})
async def lookup_service_docs(name: str, engine: OverlayEngine = Depends(get_overlay_engine)):
    try:
        service = engine.get_lookup_service(name)
    except UnknownServiceError as e:
        raise OverlayServiceNotFoundError(str(e))
    return {"name": name, "documentation": await service.get_documentation()}
