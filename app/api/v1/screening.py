"""Follow-up screening endpoints."""

from fastapi import APIRouter

from app.schemas.assessment import PHQ2Request, PHQ2Response
from app.scoring.phq2 import score_phq2

router = APIRouter()


@router.post(
    "/phq2",
    response_model=PHQ2Response,
    summary="Score a PHQ-2 follow-up screen",
)
async def score_phq2_screen(request: PHQ2Request) -> PHQ2Response:
    """Score the PHQ-2, offered when the mood domain flags."""
    result = score_phq2(request.interest_loss, request.depressed_mood)
    return PHQ2Response.model_validate(result)
