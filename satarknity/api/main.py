"""
Satarknity - REST API

FastAPI application for community incident reports: sign-in, the report
form with attachment staging, submission and the incident feed.

Run with: uvicorn satarknity.api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Request, Response, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from satarknity import __version__
from satarknity.api.pages import render_index
from satarknity.api.services import AppServices, Workspace, build_services
from satarknity.core.config import Settings, settings
from satarknity.core.errors import (
    AuthError,
    ConfigurationError,
    SatarknityError,
)
from satarknity.core.logging import setup_logging
from satarknity.geo.geocoding import Coordinates
from satarknity.incidents.attachments import MediaFile
from satarknity.incidents.form import IncidentForm

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================

class CredentialsRequest(BaseModel):
    """Email and password for sign-in or sign-up."""
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None


class AuthResponse(BaseModel):
    """Result of a sign-in or sign-up."""
    success: bool
    message: str
    user: Optional[UserResponse] = None
    confirmation_required: bool = False


class MeResponse(BaseModel):
    authenticated: bool
    user: Optional[UserResponse] = None


class FormUpdateRequest(BaseModel):
    """Text fields of the report form. Omitted fields are left unchanged."""
    description: Optional[str] = None
    location: Optional[str] = None


class LocateRequest(BaseModel):
    """Device position. Omit both values when geolocation is unavailable or denied."""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    backend_configured: bool
    modules: dict


# ============================================================================
# Dependencies
# ============================================================================

def get_services(request: Request) -> AppServices:
    return request.app.state.services


def require_backend(services: AppServices = Depends(get_services)) -> AppServices:
    """Disable a route while backend credentials are missing."""
    if not services.is_configured:
        raise ConfigurationError(
            services.config_error or "Supabase is not properly configured"
        )
    return services


def get_workspace(
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
) -> Workspace:
    """Workspace for the caller's session cookie, created on first visit."""
    cookie_name = services.settings.session_cookie_name
    session_id, workspace, created = services.workspaces.get_or_create(
        request.cookies.get(cookie_name)
    )
    if created:
        response.set_cookie(cookie_name, session_id, httponly=True, samesite="lax")
    return workspace


def find_workspace(
    request: Request,
    services: AppServices = Depends(get_services),
) -> Optional[Workspace]:
    """Workspace for the caller's cookie, if one is live. Never creates one."""
    return services.workspaces.get(request.cookies.get(services.settings.session_cookie_name))


async def satarknity_error_handler(request: Request, exc: SatarknityError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


router = APIRouter()


# ============================================================================
# System Routes
# ============================================================================

@router.get("/", response_class=HTMLResponse)
def index(request: Request, services: AppServices = Depends(get_services)):
    """Landing page: config warning, login prompt, or form and feed."""
    if not services.is_configured:
        return HTMLResponse(render_index(configured=False, user=None))

    workspace = services.workspaces.get(
        request.cookies.get(services.settings.session_cookie_name)
    )
    user = workspace.session.current_user() if workspace else None
    snapshot = services.feed.list_incidents() if user else None

    return HTMLResponse(
        render_index(
            configured=True,
            user=user,
            form=workspace.form if user else None,
            snapshot=snapshot,
        )
    )


@router.get("/health", response_model=HealthResponse, tags=["System"])
def health_check(services: AppServices = Depends(get_services)):
    """Check API health status and module availability."""
    modules = {
        "auth": services.is_configured,
        "storage": services.is_configured,
        "incidents": services.is_configured,
        "geocoding": True,
    }

    return HealthResponse(
        status="healthy" if services.is_configured else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        backend_configured=services.is_configured,
        modules=modules,
    )


# ============================================================================
# Auth Routes
# ============================================================================

@router.post("/api/v1/auth/sign-in", response_model=AuthResponse, tags=["Auth"])
def sign_in(
    request: CredentialsRequest,
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """Sign in with email and password."""
    result = workspace.session.sign_in(request.email, request.password)
    if not result.success:
        raise AuthError(result.message)
    return result.to_dict()


@router.post("/api/v1/auth/sign-up", response_model=AuthResponse, tags=["Auth"])
def sign_up(
    request: CredentialsRequest,
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """Create an account with email and password."""
    result = workspace.session.sign_up(request.email, request.password)
    if not result.success:
        raise AuthError(result.message)
    return result.to_dict()


@router.post("/api/v1/auth/sign-out", tags=["Auth"])
def sign_out(workspace: Optional[Workspace] = Depends(find_workspace)):
    """Clear the session and discard the draft report."""
    if workspace is not None:
        workspace.form.reset()
        workspace.session.sign_out()
    return {"signed_out": True}


@router.get("/api/v1/auth/me", response_model=MeResponse, tags=["Auth"])
def current_user(workspace: Optional[Workspace] = Depends(find_workspace)):
    """Currently signed-in user, if any."""
    user = workspace.session.current_user() if workspace else None
    return MeResponse(
        authenticated=user is not None,
        user=UserResponse(**user.to_dict()) if user else None,
    )


# ============================================================================
# Report Form Routes
# ============================================================================

@router.get("/api/v1/form", tags=["Report"])
def get_form(
    services: AppServices = Depends(require_backend),
    workspace: Optional[Workspace] = Depends(find_workspace),
):
    """Current draft report."""
    if workspace is None:
        return IncidentForm(services.previews).to_dict()
    return workspace.form.to_dict()


@router.put("/api/v1/form", tags=["Report"])
def update_form(
    request: FormUpdateRequest,
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """Update description and/or location."""
    workspace.form.update(description=request.description, location=request.location)
    return workspace.form.to_dict()


@router.post("/api/v1/form/locate", tags=["Report"])
def locate(
    request: LocateRequest,
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Fill the location from the device position.

    Without coordinates the location stays empty and editable. When reverse
    geocoding fails the raw coordinates are used instead.
    """
    coordinates = None
    if request.latitude is not None and request.longitude is not None:
        coordinates = Coordinates(request.latitude, request.longitude)

    resolved = workspace.form.auto_locate(services.geocoder, coordinates)
    return {
        "located": resolved is not None,
        "resolved": resolved.to_dict() if resolved else None,
        "form": workspace.form.to_dict(),
    }


@router.post("/api/v1/form/attachments", tags=["Report"])
def add_attachments(
    files: List[UploadFile] = File(...),
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Stage up to two images or videos.

    A batch that would exceed the limit is rejected as a whole; files that
    are not images or videos are dropped individually.
    """
    workspace.form.ensure_editable()
    batch = [
        MediaFile(
            filename=upload.filename or "upload",
            content_type=upload.content_type or "application/octet-stream",
            data=upload.file.read(),
        )
        for upload in files
    ]

    result = workspace.form.attachments.add_attachments(batch)
    return {
        "accepted": [a.to_dict() for a in result.accepted],
        "rejected": result.messages,
        "form": workspace.form.to_dict(),
    }


@router.delete("/api/v1/form/attachments/{index}", tags=["Report"])
def remove_attachment(
    index: int,
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """Remove a staged attachment and release its preview."""
    workspace.form.ensure_editable()
    workspace.form.attachments.remove_attachment(index)
    return workspace.form.to_dict()


@router.post("/api/v1/form/reset", tags=["Report"])
def reset_form(
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """Discard the draft and release all previews."""
    workspace.form.reset()
    return workspace.form.to_dict()


@router.post("/api/v1/form/submit", status_code=status.HTTP_201_CREATED, tags=["Report"])
def submit_form(
    services: AppServices = Depends(require_backend),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Submit the draft report.

    On failure the draft is kept so the user can retry.
    """
    incident = services.submitter.submit(workspace.form, workspace.session)
    return {
        "message": "Your community alert has been submitted successfully",
        "incident": incident.to_dict(),
    }


@router.get("/api/v1/previews/{token}", tags=["Report"])
def get_preview(token: str, services: AppServices = Depends(get_services)):
    """Serve a staged file while it is still staged."""
    media = services.previews.resolve(token)
    if media is None:
        return JSONResponse(
            status_code=404,
            content={"detail": "Preview not found", "code": "preview_not_found"},
        )
    return Response(content=media.data, media_type=media.content_type)


# ============================================================================
# Feed Routes
# ============================================================================

@router.get("/api/v1/incidents", tags=["Feed"])
def list_incidents(services: AppServices = Depends(get_services)):
    """
    Incident reports, newest first.

    A failed fetch reports status "error" and keeps the last loaded list.
    """
    return services.feed.list_incidents().to_dict()


# ============================================================================
# Application
# ============================================================================

def create_app(
    services: Optional[AppServices] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built services (tests); built from settings at startup otherwise
        app_settings: Settings used when building services
    """
    app_settings = app_settings or settings
    setup_logging(app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services(app_settings)
        logger.info(f"Satarknity {__version__} started ({app_settings.app_env})")
        try:
            yield
        finally:
            app.state.services.close()

    app = FastAPI(
        title="Satarknity",
        description="Community safety alerts: report incidents and browse the community feed",
        version=__version__,
        docs_url=None if app_settings.is_production else "/docs",
        redoc_url=None if app_settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SatarknityError, satarknity_error_handler)
    app.include_router(router)

    return app


app = create_app()


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
