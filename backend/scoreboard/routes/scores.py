"""Score routes."""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from typing import Optional
import json
import logging

from pydantic import ValidationError as PydanticValidationError

from scoreboard.errors import StoreError, ValidationError
from scoreboard.models import (
    DEFAULT_COURSE,
    ScoreListResponse,
    ScoreSubmission,
    SortDirection,
    SubmitResponse,
)
from scoreboard.services.auth import ApiKeyVerifier
from scoreboard.services.score_store import ScoreStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scores", tags=["scores"])


def get_store(request: Request) -> ScoreStore:
    return request.app.state.store


def get_verifier(request: Request) -> ApiKeyVerifier:
    return request.app.state.verifier


def require_api_key(
    request: Request,
    verifier: ApiKeyVerifier = Depends(get_verifier),
) -> None:
    """
    Dependency guarding write routes with the shared x-api-key secret.

    Runs before read_submission touches the body, so a caller without the
    key always gets 401, even with a malformed body.
    """
    if not verifier.configured:
        logger.error("[AUTH] No API key configured; rejecting submission")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server not configured",
        )
    if not verifier.verify(request.headers.get("x-api-key")):
        client = request.client.host if request.client else "unknown"
        logger.warning("[AUTH] Rejected submission from %s", client)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


async def read_submission(request: Request) -> ScoreSubmission:
    """
    Parse the submission body.

    Declared as a dependency after require_api_key so the key is checked
    before the body is read. An empty body or JSON null is an empty
    submission, which fails later with "Missing name".
    """
    raw = await request.body()
    if not raw.strip():
        return ScoreSubmission()
    try:
        data = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request body")
    if data is None:
        return ScoreSubmission()
    try:
        return ScoreSubmission.model_validate(data)
    except PydanticValidationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request body")


@router.get("", response_model=ScoreListResponse)
async def list_scores(
    course: str = Query(DEFAULT_COURSE),
    direction: Optional[str] = Query(SortDirection.ASC.value, alias="dir"),
    store: ScoreStore = Depends(get_store),
) -> ScoreListResponse:
    """List every score record, sorted by one course's best time."""
    try:
        records = await store.list_scores(course, direction)
    except StoreError:
        logger.exception("[SCORES] Failed to list scores")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load scores",
        )
    return ScoreListResponse(scores=[record.to_stored() for record in records])


@router.post(
    "/submit",
    response_model=SubmitResponse,
    dependencies=[Depends(require_api_key)],
)
async def submit_score(
    submission: ScoreSubmission = Depends(read_submission),
    store: ScoreStore = Depends(get_store),
) -> SubmitResponse:
    """
    Submit a player's course times.

    Each course keeps the lower of the stored and submitted time; name,
    device and updatedAt always take the submitted values.
    """
    try:
        saved = await store.submit(submission)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreError:
        logger.exception("[SCORES] Failed to submit score")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit",
        )
    return SubmitResponse(saved=saved.to_stored())
