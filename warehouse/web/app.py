"""FastAPI app exposing the Warehouse operations to web clients."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr

from ..core.auth_gate import Access
from ..core.errors import (
    AlreadyQueuedError,
    AuthError,
    DownloadDaemonError,
    DuplicateKeyError,
    NotFoundError,
    SiteError,
    SizeLimitError,
    ValidationError,
    WarehouseError,
)
from ..core.request_context import get_session, set_session
from ..core.session_store import SESSION_COOKIE_NAME, encode_token
from ..sources.registry import get_site
from .runtime import WarehouseRuntime

logger = logging.getLogger(__name__)

STRING_LIMIT = 128
GENERIC_ERROR = "An internal error occurred."
TORRENT_STATE_FIELDS = [
    "id",
    "addedDate",
    "name",
    "peers",
    "rateDownload",
    "rateUpload",
    "status",
    "totalSize",
]

# First match wins, so subclasses go before their bases.
ERROR_STATUS = [
    (AuthError, 403),
    (SizeLimitError, 403),
    (ValidationError, 400),
    (NotFoundError, 404),
    (AlreadyQueuedError, 409),
    (DuplicateKeyError, 409),
    (SiteError, 502),
    (DownloadDaemonError, 502),
]


class LoginRequest(BaseModel):
    username: StrictStr = Field(max_length=STRING_LIMIT)
    password: StrictStr = Field(max_length=STRING_LIMIT)


class BrowseRequest(BaseModel):
    site: StrictStr = Field(max_length=STRING_LIMIT)
    page: StrictInt = Field(ge=1)


class SearchRequest(BaseModel):
    site: StrictStr = Field(max_length=STRING_LIMIT)
    query: StrictStr = Field(max_length=STRING_LIMIT)
    categories: Optional[List[StrictInt]] = None
    page: StrictInt = Field(ge=1)


class DownloadRequest(BaseModel):
    site: StrictStr = Field(max_length=STRING_LIMIT)
    id: StrictInt


class GetSubscriptionsRequest(BaseModel):
    all: StrictBool = False
    userId: Optional[StrictStr] = Field(default=None, max_length=STRING_LIMIT)


class CreateSubscriptionRequest(BaseModel):
    pattern: StrictStr = Field(max_length=STRING_LIMIT)
    category: Optional[StrictStr] = Field(default=None, max_length=STRING_LIMIT)


class DeleteSubscriptionRequest(BaseModel):
    subscriptionId: StrictStr = Field(max_length=STRING_LIMIT)


class ChangePasswordRequest(BaseModel):
    currentPassword: StrictStr = Field(max_length=STRING_LIMIT)
    newPassword: StrictStr = Field(max_length=STRING_LIMIT)


def _error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _status_for(error: WarehouseError) -> Optional[int]:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return None


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid request body."
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if location:
        return f'Invalid value for "{location}": {first.get("msg", "invalid")}.'
    return f'Invalid request: {first.get("msg", "invalid")}.'


def create_app(runtime: WarehouseRuntime) -> FastAPI:
    gate = runtime.gate
    session_max_age = runtime.config.session_max_age

    def _secure_cookie(request: Request) -> bool:
        env = str(os.environ.get("WAREHOUSE_SECURE_COOKIES", "") or "").strip().lower()
        if env in {"1", "true", "yes", "on"}:
            return True
        proto = str(request.headers.get("x-forwarded-proto") or "").strip().lower()
        return proto == "https"

    app = FastAPI(title="Warehouse API", version="1.0.0")

    @app.exception_handler(WarehouseError)
    async def warehouse_error_handler(request: Request, exc: WarehouseError):
        status_code = _status_for(exc)
        if status_code is None:
            logger.error("Operation %s failed: %s", request.url.path, exc)
            return _error_response(GENERIC_ERROR, 500)
        if status_code >= 500:
            logger.warning("Operation %s failed: %s", request.url.path, exc)
        return _error_response(str(exc), status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(_validation_message(exc), 400)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error in %s.", request.url.path)
        return _error_response(GENERIC_ERROR, 500)

    def operation(path: str, access: Access) -> Callable:
        """Register a POST operation guarded according to its access tag."""

        def admit(request: Request) -> None:
            ctx = gate.admit(
                access,
                request.headers.get("origin"),
                request.cookies.get(SESSION_COOKIE_NAME),
                request.headers.get("user-agent"),
            )
            set_session(request, ctx)

        def register(handler: Callable) -> Callable:
            app.add_api_route(path, handler, methods=["POST"], dependencies=[Depends(admit)])
            return handler

        return register

    # ---- Sessions ----
    @operation("/login", Access.PUBLIC)
    def login(request: Request, body: LoginRequest) -> Response:
        address = request.headers.get("x-real-ip")
        if not address:
            raise ValidationError("Missing X-Real-IP header.")
        user = runtime.accounts.authenticate(body.username, body.password)
        if user is None:
            return JSONResponse({"success": False})
        token = runtime.sessions.create_session(user, address, request.headers.get("user-agent"))
        logger.info("User %s logged in from %s.", user.name, address)
        resp = JSONResponse({"success": True})
        resp.set_cookie(
            SESSION_COOKIE_NAME,
            encode_token(token),
            httponly=True,
            samesite="lax",
            secure=_secure_cookie(request),
            max_age=session_max_age,
            path="/",
        )
        return resp

    @operation("/logout", Access.REQUIRES_AUTH)
    def logout(request: Request) -> Response:
        runtime.sessions.delete_session(get_session(request).token)
        resp = JSONResponse({})
        resp.delete_cookie(SESSION_COOKIE_NAME, path="/")
        return resp

    @operation("/validate-session", Access.PUBLIC)
    def validate_session(request: Request) -> Dict[str, Any]:
        ctx = gate.resolve(request.cookies.get(SESSION_COOKIE_NAME), request.headers.get("user-agent"))
        return {"valid": ctx.user is not None}

    # ---- Sites ----
    @operation("/get-sites", Access.REQUIRES_AUTH)
    def get_sites() -> Dict[str, Any]:
        return {"sites": [site.describe() for site in runtime.sites.values()]}

    @operation("/browse", Access.REQUIRES_AUTH)
    def browse(body: BrowseRequest) -> Dict[str, Any]:
        site = get_site(runtime.sites, body.site)
        return site.browse(body.page).to_dict()

    @operation("/search", Access.REQUIRES_AUTH)
    def search(body: SearchRequest) -> Dict[str, Any]:
        site = get_site(runtime.sites, body.site)
        return site.search(body.query, body.categories, body.page).to_dict()

    # ---- Downloads ----
    @operation("/download", Access.REQUIRES_AUTH)
    def download(request: Request, body: DownloadRequest) -> Dict[str, Any]:
        site = get_site(runtime.sites, body.site)
        runtime.download_gate.queue_manual_download(get_session(request).user, site, body.id)
        return {}

    @operation("/get-torrents", Access.REQUIRES_AUTH)
    def get_torrents() -> Dict[str, Any]:
        torrents = runtime.downloads.list_all(fields=TORRENT_STATE_FIELDS)
        return {"torrents": [torrent.to_state_dict() for torrent in torrents]}

    # ---- Subscriptions ----
    @operation("/get-subscriptions", Access.REQUIRES_AUTH)
    def get_subscriptions(request: Request, body: GetSubscriptionsRequest) -> Dict[str, Any]:
        subscriptions = runtime.subscriptions.list(get_session(request).user, all=body.all, user_id=body.userId)
        return {"subscriptions": [subscription.to_dict() for subscription in subscriptions]}

    @operation("/create-subscription", Access.REQUIRES_AUTH)
    def create_subscription(request: Request, body: CreateSubscriptionRequest) -> Dict[str, Any]:
        subscription = runtime.subscriptions.create(get_session(request).user, body.pattern, body.category)
        return {"subscriptionId": str(subscription.id)}

    @operation("/delete-subscription", Access.REQUIRES_AUTH)
    def delete_subscription(request: Request, body: DeleteSubscriptionRequest) -> Dict[str, Any]:
        runtime.subscriptions.delete(get_session(request).user, body.subscriptionId)
        return {}

    # ---- Profile ----
    @operation("/get-profile", Access.REQUIRES_AUTH)
    def get_profile(request: Request) -> Dict[str, Any]:
        return runtime.accounts.profile(get_session(request).user)

    @operation("/change-password", Access.REQUIRES_AUTH)
    def change_password(request: Request, body: ChangePasswordRequest) -> Dict[str, Any]:
        success = runtime.accounts.change_password(
            get_session(request).user,
            body.currentPassword,
            body.newPassword,
        )
        return {"success": success}

    return app
