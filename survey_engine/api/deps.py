"""API Dependencies — bearer identity resolution and per-request service wiring.

Invariants:
    - Identity is the `sub` claim of an HS256 JWT signed with settings.jwt_secret
    - get_current_actor raises AuthenticationError (401) on a missing or bad token
    - get_optional_actor resolves to None instead of raising (anonymous reader)
    - Services share the request's AsyncSession through one SqlSurveyRepository
"""

import logging

import jwt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from survey_engine.config import get_settings
from survey_engine.core.domain_types import UserId
from survey_engine.core.errors import AuthenticationError
from survey_engine.infrastructure.anthropic_client import ResilientAnthropicClient
from survey_engine.infrastructure.database import get_db
from survey_engine.infrastructure.survey_repository import SqlSurveyRepository
from survey_engine.services.response_lifecycle import ResponseLifecycleService
from survey_engine.services.survey_assistant import SurveyAssistant
from survey_engine.services.survey_query import SurveyQueryEngine

logger = logging.getLogger(__name__)

_BEARER = "Bearer "


def decode_actor(token: str) -> UserId:
    """Verify a bearer token and return its subject."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise AuthenticationError("Invalid token")
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")
    return UserId(str(subject))


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith(_BEARER):
        return None
    return auth[len(_BEARER):].strip() or None


async def get_current_actor(request: Request) -> UserId:
    token = _bearer_token(request)
    if token is None:
        raise AuthenticationError()
    return decode_actor(token)


async def get_optional_actor(request: Request) -> UserId | None:
    token = _bearer_token(request)
    if token is None:
        return None
    try:
        return decode_actor(token)
    except AuthenticationError:
        return None


# ─── Services ───────────────────────────────────────────────────

def get_repository(db: AsyncSession = Depends(get_db)) -> SqlSurveyRepository:
    return SqlSurveyRepository(db)


def get_lifecycle(
    repository: SqlSurveyRepository = Depends(get_repository),
) -> ResponseLifecycleService:
    return ResponseLifecycleService(
        repository,
        max_write_attempts=get_settings().lifecycle_max_write_attempts,
    )


def get_query_engine(
    repository: SqlSurveyRepository = Depends(get_repository),
) -> SurveyQueryEngine:
    return SurveyQueryEngine(repository, max_page_size=get_settings().max_page_size)


def get_anthropic_client() -> ResilientAnthropicClient:
    settings = get_settings()
    return ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )


def get_assistant(
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
    client: ResilientAnthropicClient = Depends(get_anthropic_client),
) -> SurveyAssistant:
    settings = get_settings()
    return SurveyAssistant(
        lifecycle, client,
        model=settings.assistant_model,
        max_tokens=settings.assistant_max_tokens,
    )
