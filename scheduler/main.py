"""FastAPI application — entry point for the meeting scheduling service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from scheduler.config import get_settings
from scheduler.domain.bus import EventBus
from scheduler.domain.errors import ConflictError, NotFound, PermissionDenied, ValidationError
from scheduler.domain.handlers import HandlerRegistry
from scheduler.domain.models import (
    ActivityList,
    AuthResponse,
    ConflictResponse,
    LoginRequest,
    MeetingEnvelope,
    MeetingList,
    MeetingRequest,
    ParticipantList,
    ProfileEnvelope,
    RegisterRequest,
    User,
    UserProfile,
    UserView,
)
from scheduler.logs import LoggingMiddleware, configure_structlog
from scheduler.repos.memory import (
    ActivityRepository,
    MeetingRepository,
    DEMO_ORGANIZER_EMAIL,
    UserRepository,
    seed_demo_data,
)
from scheduler.services.auth import (
    authenticate,
    create_access_token,
    hash_password,
    register_user,
    verify_token,
)
from scheduler.services.scheduling import SchedulingService

logger = structlog.get_logger(__name__)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
user_repo = UserRepository()
meeting_repo = MeetingRepository()
activity_repo = ActivityRepository()

handler_registry = HandlerRegistry(bus=event_bus, activity_repo=activity_repo)
scheduling = SchedulingService(meeting_repo=meeting_repo, user_repo=user_repo, bus=event_bus)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_structlog()
    if settings.SEED_DEMO_DATA and user_repo.get_by_email(DEMO_ORGANIZER_EMAIL) is None:
        seed_demo_data(user_repo, meeting_repo, hash_password("password123"))
        logger.info("seed.loaded")
    logger.info("app.started", environment=settings.ENVIRONMENT.value)
    yield


app = FastAPI(title="Meeting Scheduling Service", lifespan=lifespan)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error translation ─────────────────────────────────────────────────


@app.exception_handler(RequestValidationError)
def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "msg": err["msg"],
            "param": ".".join(str(part) for part in err["loc"] if part != "body"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})


@app.exception_handler(ConflictError)
def _conflict_error(request: Request, exc: ConflictError) -> JSONResponse:
    body = ConflictResponse(
        message=exc.message,
        conflicts=scheduling.present_conflicts(exc.reports),
    )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=body.model_dump(mode="json", by_alias=True),
    )


def _message_handler(status_code: int):
    def handler(request: Request, exc: ValidationError | PermissionDenied | NotFound) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"message": exc.message})

    return handler


app.add_exception_handler(ValidationError, _message_handler(status.HTTP_400_BAD_REQUEST))
app.add_exception_handler(PermissionDenied, _message_handler(status.HTTP_403_FORBIDDEN))
app.add_exception_handler(NotFound, _message_handler(status.HTTP_404_NOT_FOUND))


# ── Authentication ────────────────────────────────────────────────────

_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> User:
    """Resolve the bearer token to the acting user."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = user_repo.get(verify_token(credentials.credentials))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest) -> AuthResponse:
    user = register_user(payload, user_repo)
    return AuthResponse(token=create_access_token(user.id), user=UserProfile.of(user))


@app.post("/auth/login", response_model=AuthResponse)
def login(payload: LoginRequest) -> AuthResponse:
    user = authenticate(payload, user_repo)
    return AuthResponse(token=create_access_token(user.id), user=UserProfile.of(user))


@app.get("/auth/me", response_model=ProfileEnvelope)
def me(current_user: User = Depends(get_current_user)) -> ProfileEnvelope:
    return ProfileEnvelope(user=UserProfile.of(current_user))


@app.get("/users/participants", response_model=ParticipantList)
def list_participants(current_user: User = Depends(get_current_user)) -> ParticipantList:
    """Users that can be invited to a meeting."""
    return ParticipantList(participants=[UserView.of(u) for u in scheduling.list_participants()])


@app.get("/meetings", response_model=MeetingList)
def list_meetings(current_user: User = Depends(get_current_user)) -> MeetingList:
    """Return the acting user's meetings in chronological order."""
    meetings = scheduling.list_meetings_for(current_user)
    return MeetingList(meetings=[scheduling.present(m) for m in meetings])


@app.post("/meetings", response_model=MeetingEnvelope, status_code=201)
def create_meeting(
    payload: MeetingRequest, current_user: User = Depends(get_current_user)
) -> MeetingEnvelope:
    """Create a meeting unless a participant already has an overlapping one."""
    meeting = scheduling.create_meeting(payload, current_user)
    return MeetingEnvelope(meeting=scheduling.present(meeting))


@app.get("/meetings/{meeting_id}", response_model=MeetingEnvelope)
def get_meeting(meeting_id: str, current_user: User = Depends(get_current_user)) -> MeetingEnvelope:
    meeting = scheduling.get_meeting(meeting_id, current_user)
    return MeetingEnvelope(meeting=scheduling.present(meeting))


@app.put("/meetings/{meeting_id}", response_model=MeetingEnvelope)
def update_meeting(
    meeting_id: str,
    payload: MeetingRequest,
    current_user: User = Depends(get_current_user),
) -> MeetingEnvelope:
    meeting = scheduling.update_meeting(meeting_id, payload, current_user)
    return MeetingEnvelope(meeting=scheduling.present(meeting))


@app.delete("/meetings/{meeting_id}", status_code=200)
def delete_meeting(meeting_id: str, current_user: User = Depends(get_current_user)) -> dict:
    scheduling.delete_meeting(meeting_id, current_user)
    return {"message": "Meeting deleted successfully"}


@app.get("/meetings/{meeting_id}/activity", response_model=ActivityList)
def meeting_activity(
    meeting_id: str, current_user: User = Depends(get_current_user)
) -> ActivityList:
    """Return the activity log of a meeting the acting user can see."""
    scheduling.get_meeting(meeting_id, current_user)
    return ActivityList(activity=activity_repo.list_for_meeting(meeting_id))
