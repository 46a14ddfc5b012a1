"""FastAPI server exposing the garment orchestrator for the UI."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from logic.validation import OutfitRequestModel, SuggestionRequestModel, VariationChoiceModel
from models.errors import (
    AuthError,
    GarmentStudioError,
    InvalidTransitionError,
    RateLimited,
    UnknownSessionError,
    ValidationError,
    WorkflowBusyError,
)
from studio_app.app import GarmentStudioApp
from studio_app.logging_config import SERVICE_NAME, configure_logging

_STATUS_BY_ERROR = [
    (UnknownSessionError, 404),
    (ValidationError, 422),
    (InvalidTransitionError, 409),
    (WorkflowBusyError, 409),
    (AuthError, 401),
    (RateLimited, 429),
]


class SessionRequest(BaseModel):
    """Request payload for starting a workflow session."""

    user_id: str = Field("default", min_length=1)
    avatar_id: str | None = Field(None, description="Avatar the garment will be applied to")
    avatar_image: str | None = Field(None, description="Original avatar photo, registered on first use")


class AvatarRequest(BaseModel):
    avatar_id: str = Field(..., min_length=1)
    image_url: str = Field(..., min_length=1)


class VariationsRequest(BaseModel):
    request: OutfitRequestModel
    labels: List[str] | None = None
    user_id: str = "default"
    limit: int = Field(3, ge=1, le=5)
    session_id: str | None = None


class VariationChoiceRequest(VariationChoiceModel):
    user_id: str = "default"
    session_id: str | None = None


def _status_for(exc: GarmentStudioError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 502


def create_app(studio: GarmentStudioApp | None = None) -> FastAPI:
    """Build the FastAPI app around a studio instance."""

    studio = studio or GarmentStudioApp()
    orchestrator = studio.orchestrator
    app = FastAPI(title="Garment Studio", version="0.1.0")
    app.state.studio = studio

    @app.exception_handler(GarmentStudioError)
    async def _studio_error(_: Request, exc: GarmentStudioError) -> JSONResponse:
        return JSONResponse(
            status_code=_status_for(exc),
            content={"error": type(exc).__name__, "message": exc.user_message, "retryable": exc.retryable},
        )

    @app.get("/healthz")
    def healthcheck() -> dict:
        """Lightweight readiness check."""

        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "environment": studio.config.environment or "local",
        }

    @app.post("/sessions")
    def create_session(request: SessionRequest) -> dict:
        session = orchestrator.start_session(
            avatar_id=request.avatar_id, avatar_image=request.avatar_image, user_id=request.user_id
        )
        return session.snapshot()

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str) -> dict:
        return orchestrator.get_session(session_id).snapshot()

    @app.post("/sessions/{session_id}/submit")
    def submit(session_id: str, request: OutfitRequestModel) -> dict:
        session = orchestrator.submit(
            session_id,
            description=request.description,
            style=request.style,
            weather=request.weather.model_dump() if request.weather else None,
            time_of_day=request.time_of_day,
            season=request.season,
        )
        return session.snapshot()

    @app.post("/sessions/{session_id}/accept")
    def accept(session_id: str) -> dict:
        return orchestrator.accept(session_id).snapshot()

    @app.post("/sessions/{session_id}/decline")
    def decline(session_id: str) -> dict:
        return orchestrator.decline(session_id).snapshot()

    @app.post("/sessions/{session_id}/retry")
    def retry(session_id: str) -> dict:
        return orchestrator.retry(session_id).snapshot()

    @app.post("/sessions/{session_id}/cancel")
    def cancel(session_id: str) -> dict:
        return {"cancelled": orchestrator.cancel(session_id)}

    @app.post("/sessions/{session_id}/start-new")
    def start_new(session_id: str) -> dict:
        return orchestrator.start_new(session_id).snapshot()

    @app.post("/suggestions")
    def suggestions(request: SuggestionRequestModel) -> Dict[str, Any]:
        results = orchestrator.suggest_outfits(
            request.weather.to_snapshot(),
            request.style_profile.model_dump(),
            season=request.season,
            time_of_day=request.time_of_day,
        )
        return {"suggestions": [suggestion.to_dict() for suggestion in results]}

    @app.post("/variations")
    def variations(request: VariationsRequest) -> Dict[str, Any]:
        results = orchestrator.generate_variations(
            request.request.model_dump(),
            labels=request.labels,
            user_id=request.user_id,
            limit=request.limit,
            session_id=request.session_id,
        )
        return {"variations": results}

    @app.post("/variations/choice")
    def record_choice(request: VariationChoiceRequest) -> Dict[str, Any]:
        user_id = orchestrator.resolve_user(request.user_id, request.session_id)
        orchestrator.record_variation_choice(
            request.variation_label, request.prompt_used, request.outfit_style, user_id=user_id
        )
        return orchestrator.preferences(user_id)

    @app.get("/preferences/{user_id}")
    def preferences(user_id: str) -> Dict[str, Any]:
        return orchestrator.preferences(user_id)

    @app.post("/avatars")
    def register_avatar(request: AvatarRequest) -> Dict[str, Any]:
        return orchestrator.register_avatar(request.avatar_id, request.image_url)

    @app.get("/avatars/{avatar_id}")
    def avatar_status(avatar_id: str) -> Dict[str, Any]:
        return orchestrator.avatar_status(avatar_id)

    @app.post("/avatars/{avatar_id}/reset")
    def reset_avatar(avatar_id: str) -> Dict[str, Any]:
        return orchestrator.reset_avatar(avatar_id)

    return app


def get_app() -> FastAPI:
    """Expose a FastAPI instance for ASGI servers (``uvicorn --factory server.api:get_app``)."""

    configure_logging()
    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
