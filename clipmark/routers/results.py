import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from clipmark.exceptions import InputError
from clipmark.services.store import load_result

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/result/{document_id}", response_class=PlainTextResponse, summary="Fetch a stored clip")
async def get_result(document_id: str) -> PlainTextResponse:
    try:
        markdown = load_result(document_id)
    except InputError:
        markdown = None
    if markdown is None:
        raise HTTPException(status_code=404, detail="Result not found.")
    return PlainTextResponse(markdown, media_type="text/markdown; charset=utf-8")
