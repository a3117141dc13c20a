"""API route for translating text into LQL without executing it."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from lacework_lql.translator.generator import IntentTranslator
from lacework_lql.translator.schemas import TranslationResult

router = APIRouter(prefix="/translate", tags=["translate"])


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Natural-language request")


def _get_translator(request: Request) -> IntentTranslator:
    translator = getattr(request.app.state, "translator", None)
    if translator is None:
        raise HTTPException(status_code=503, detail="Translator not initialized")
    return translator


@router.post("", response_model=TranslationResult)
async def translate(body: TranslateRequest, request: Request):
    """Translate a request into LQL with category, parameters and confidence."""
    return await _get_translator(request).translate(body.text)
