"""
Question answering API routes.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from docqa.api.dependencies import ClientDisconnected, get_app_context, run_until_disconnect
from docqa.context import AppContext
from docqa.core.errors import DocQAError, NoActiveCorpusError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["question"])

GENERIC_ERROR = "Failed to generate answer."


class AskRequest(BaseModel):
    """Request for a question about the uploaded document."""
    question: Any = Field(None, description="The question to ask about the document")
    debug: bool = Field(False, description="Include retrieval and generation diagnostics")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/ask")
async def ask_question(
    request: Request,
    body: Optional[AskRequest] = None,
    context: AppContext = Depends(get_app_context),
):
    """
    Ask a question about the uploaded document.

    The system will:
    1. Search the document for the 15 closest chunks
    2. Keep confident matches and rerank them by keyword overlap
    3. Generate an answer from the top 5 chunks
    4. Attach diagnostics when debug is true
    """
    if body is None or not isinstance(body.question, str) or not body.question:
        return _error(400, "Question is required.")

    if not context.corpus.is_active:
        return _error(400, NoActiveCorpusError.public_message)

    try:
        response = await run_until_disconnect(
            request,
            context.pipeline.ask(body.question, debug=body.debug),
        )
    except ClientDisconnected:
        logger.info("Client disconnected, question abandoned")
        return Response(status_code=499)
    except DocQAError as e:
        logger.error(f"Error in /ask: {e}")
        return _error(e.status_code, e.public_message)
    except Exception:
        logger.exception("Unexpected error in /ask")
        return _error(500, GENERIC_ERROR)

    return JSONResponse(status_code=200, content=response.to_dict())
