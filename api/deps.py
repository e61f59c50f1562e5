"""
Shared FastAPI dependencies: caller identity, LLM client, and the mapping
from domain exceptions onto HTTP errors.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from agents.llm import LLMClient, LLMError, PaymentRequiredError, RateLimitError
from db.database import get_db_dependency
from db.models import Profile
from models import (
    InvalidStageTransition,
    NotFound,
    PipelineError,
    ProfileIncomplete,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


def get_current_profile(
    x_speaker_id: Optional[int] = Header(None),
    db: Session = Depends(get_db_dependency),
) -> Profile:
    if x_speaker_id is None:
        raise HTTPException(status_code=401, detail="Missing X-Speaker-Id header.")
    profile = db.get(Profile, x_speaker_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Unknown speaker.")
    return profile


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not profile.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return profile


def get_llm() -> LLMClient:
    return LLMClient()


def http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidStageTransition):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (ValidationFailed, ProfileIncomplete)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, RateLimitError):
        return HTTPException(status_code=429, detail=str(e))
    if isinstance(e, PaymentRequiredError):
        return HTTPException(status_code=402, detail=str(e))
    if isinstance(e, LLMError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@contextmanager
def domain_errors():
    """Re-raise domain and LLM exceptions as HTTPException."""
    try:
        yield
    except (PipelineError, LLMError) as e:
        logger.warning(f"Request failed: {type(e).__name__}: {e}")
        raise http_error(e) from e
