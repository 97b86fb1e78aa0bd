"""
Document upload API routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from docqa.api.dependencies import get_app_context
from docqa.context import AppContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["document"])


class UploadResponse(BaseModel):
    """Response for document upload."""
    message: str


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    pdf: Optional[UploadFile] = File(None),
    context: AppContext = Depends(get_app_context),
):
    """
    Upload a PDF document and make it the active corpus.

    The document will be:
    1. Parsed to extract text
    2. Split into overlapping chunks
    3. Embedded and stored, replacing any previous document
    """
    if pdf is None:
        return PlainTextResponse("No file uploaded.", status_code=400)

    try:
        data = await pdf.read()
        result = await context.ingestion.ingest_bytes(
            data,
            filename=pdf.filename or "document.pdf",
        )
    except Exception as e:
        logger.error(f"Error processing PDF: {e}")
        return PlainTextResponse("Error processing file.", status_code=500)
    finally:
        await pdf.close()

    logger.info(f"Upload complete: {result.to_dict()['metrics']}")
    return UploadResponse(message="File processed successfully")
