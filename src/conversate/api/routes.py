"""REST API routes for chat, conversation history, profiles and personas."""

import structlog
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from conversate.api.dependencies import get_chat_service
from conversate.api.identity import Identity, get_identity
from conversate.api.schemas import ChatRequest, ConversationActionRequest, PreferencesRequest
from conversate.errors import CompletionError, StorageUnavailableError, UnknownPersonaError
from conversate.models.profile import PreferencesUpdate
from conversate.services.chat import ChatService, progress_payload

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


@router.post("/chat")
async def post_chat(
    body: ChatRequest,
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    """Send a message to a persona and get the reply."""
    turn = await chat.send_message(
        identity.user_id,
        body.message,
        body.persona_id,
        email=identity.email,
        name=identity.name,
        target_language=body.target_language,
        proficiency_level=body.proficiency_level,
    )
    return {"success": True, "data": turn.to_payload()}


@router.get("/chat")
async def get_chat(
    session_id: str | None = Query(default=None, alias="sessionId"),
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    """Get one session in full, or a summary of the user's recent sessions."""
    if session_id:
        session = await chat.get_session(identity.user_id, session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {"success": True, "data": {"session": session.model_dump(mode="json")}}

    sessions = await chat.history(identity.user_id, include_archived=False)
    return {"success": True, "data": {"sessions": [s.summary() for s in sessions]}}


@router.get("/conversations")
async def list_conversations(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    persona_id: str | None = Query(default=None, alias="personaId"),
    include_archived: bool = Query(default=False, alias="includeArchived"),
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    """Paginated conversation history."""
    sessions = await chat.history(
        identity.user_id,
        limit=limit,
        offset=offset,
        persona_id=persona_id,
        include_archived=include_archived,
    )
    return {
        "success": True,
        "data": {
            "conversations": [s.summary() for s in sessions],
            "total": len(sessions),
            "hasMore": len(sessions) == limit,
        },
    }


@router.post("/conversations")
async def conversation_action(
    body: ConversationActionRequest,
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
):
    """End or archive a conversation."""
    if body.action == "end_session":
        session = await chat.end_session(identity.user_id, body.conversation_id)
        done, failed = "Session ended successfully", "Failed to end session"
    elif body.action == "archive":
        session = await chat.archive_session(identity.user_id, body.conversation_id)
        done, failed = "Conversation archived", "Failed to archive conversation"
    else:
        raise HTTPException(status_code=400, detail="Invalid action")

    if session is None:
        return JSONResponse({"success": False, "message": failed}, status_code=404)
    data = {**session.summary(), "learningSummary": session.conversation_summary()}
    return {"success": True, "data": data, "message": done}


@router.get("/profile")
async def get_profile(
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    profile = await chat.get_profile(identity.user_id, email=identity.email, name=identity.name)
    return {"success": True, "data": profile.model_dump(mode="json")}


@router.patch("/profile/preferences")
async def update_preferences(
    body: PreferencesRequest,
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    update = PreferencesUpdate(**body.model_dump(exclude_none=True))
    profile = await chat.update_preferences(identity.user_id, update)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"success": True, "data": profile.model_dump(mode="json")}


@router.get("/analytics")
async def get_analytics(
    identity: Identity = Depends(get_identity),
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    return {"success": True, "data": await chat.analytics(identity.user_id)}


@router.get("/personas")
async def list_personas(chat: ChatService = Depends(get_chat_service)) -> dict:
    personas = chat.responder.catalog.all()
    return {"success": True, "data": {"personas": [p.public_view() for p in personas]}}


@router.get("/personas/{persona_id}/starters")
async def persona_starters(
    persona_id: str,
    chat: ChatService = Depends(get_chat_service),
) -> dict:
    starters = chat.responder.catalog.conversation_starters(persona_id)
    return {"success": True, "data": {"starters": starters}}


@router.get("/health")
async def health_check(chat: ChatService = Depends(get_chat_service)) -> dict:
    """Health check endpoint; reports degraded storage instead of hiding it."""
    storage = {
        "profiles": chat.profiles.store.health(),
        "sessions": chat.registry.store.health(),
    }
    healthy = all(s["writable"] for s in storage.values())
    return {"status": "ok" if healthy else "degraded", "storage": storage}


def register_exception_handlers(app: FastAPI) -> None:
    """Map core errors onto HTTP responses."""

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        fields = [
            {
                "field": ".".join(str(p) for p in err["loc"] if p != "body"),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            {"success": False, "error": "Invalid request", "fields": fields},
            status_code=400,
        )

    @app.exception_handler(UnknownPersonaError)
    async def on_unknown_persona(request: Request, exc: UnknownPersonaError):
        return JSONResponse({"success": False, "error": str(exc)}, status_code=404)

    @app.exception_handler(CompletionError)
    async def on_completion_error(request: Request, exc: CompletionError):
        logger.error("chat_generation_failed", path=request.url.path, error=str(exc))
        return JSONResponse(
            {"success": False, "error": "Internal server error"}, status_code=500
        )

    @app.exception_handler(StorageUnavailableError)
    async def on_storage_error(request: Request, exc: StorageUnavailableError):
        logger.error("storage_unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(
            {"success": False, "error": "Storage unavailable", "degraded": True},
            status_code=503,
        )
