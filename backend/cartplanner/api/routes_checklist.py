import logging
from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from cartplanner.core.gemini import generate_checklist, GeminiRateLimitError, GeminiRequestError
from cartplanner.schemas.checklist import ChecklistItem, ChecklistRequest, ChecklistResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["checklist"])


@router.post("/generate-checklist", response_model=ChecklistResponse)
async def checklist(req: ChecklistRequest):
    project_query = (req.project_query or "").strip()
    if not project_query:
        raise HTTPException(status_code=400, detail="Project query is required")

    try:
        raw_items = await generate_checklist(project_query)

    except GeminiRateLimitError as e:
        detail = {
            "error": "rate_limited",
            "message": e.message,
            "retry_after_seconds": e.retry_after_seconds,
        }
        headers = {}
        if e.retry_after_seconds is not None:
            headers["Retry-After"] = str(e.retry_after_seconds)
        raise HTTPException(status_code=429, detail=detail, headers=headers)

    except GeminiRequestError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "gemini_error",
                "message": e.message,
                "status_code": e.status_code,
                "body": e.body,
            },
        )

    except ValueError as e:
        # unparseable model output
        raise HTTPException(status_code=422, detail={"error": "bad_model_output", "message": str(e)})

    items: List[ChecklistItem] = []
    for raw in raw_items:
        try:
            items.append(ChecklistItem.model_validate(raw))
        except ValidationError as e:
            logger.warning("checklist: dropping item %r: %s", raw, e.errors()[:1])

    if not items:
        raise HTTPException(
            status_code=422,
            detail={"error": "bad_model_output", "message": "Model returned no usable checklist items"},
        )

    return ChecklistResponse(success=True, checklist=items, project_query=project_query)
