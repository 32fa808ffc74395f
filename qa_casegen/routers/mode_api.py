from fastapi import APIRouter, Depends

from qa_casegen.config.settings import Config
from qa_casegen.deps import get_config
from qa_casegen.models.api_models import GenerationMode, ModeResponse

router = APIRouter()


@router.get("", response_model=ModeResponse)
async def get_mode(config: Config = Depends(get_config)) -> ModeResponse:
    """Automatic mode needs a Gemini key; manual mode always works"""
    if config.gemini.api_key:
        return ModeResponse(
            mode=GenerationMode.AUTOMATIC,
            gemini_available=True,
            message="Test cases are generated with Gemini",
        )
    return ModeResponse(
        mode=GenerationMode.MANUAL,
        gemini_available=False,
        message="GEMINI_API_KEY is not set; use /prompts to generate prompts and paste AI responses back",
    )
