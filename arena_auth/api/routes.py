"""
FastAPI routes for Discord login, sessions and identity linking.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse, RedirectResponse

from arena_auth.clients.discord import DiscordApiError, OAuthTokenExchangeError
from arena_auth.clients.s3_uploads import ImageUploadError
from arena_auth.core.errors import (
    IdentitySyncError,
    InvalidSessionError,
    InvalidStateError,
    NoSuchUserError,
    RefreshFailedError,
    StoreUnavailableError,
)
from arena_auth.dependencies import (
    get_app_settings,
    get_discord_client,
    get_identity_sync_service,
    get_image_presigner,
    get_oauth_state_codec,
    get_session_manager,
)
from arena_auth.models.credentials import OAuthState
from arena_auth.schemas import (
    IdentitySyncRequest,
    IdentitySyncResponse,
    ImageUploadResponse,
    LogoutResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)

SESSION_COOKIE = "sessionToken"
_NO_STORE = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _store_unavailable(exc: StoreUnavailableError) -> HTTPException:
    logger.error("Credential store unavailable: %s", exc)
    return HTTPException(
        status_code=HTTPStatus.SERVICE_UNAVAILABLE,
        detail="Credential store unavailable; retry shortly.",
    )


def _set_session_cookie(
    response: Response, value: str, *, max_age: int, secure: bool
) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=secure,
        samesite="strict",
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/login", status_code=HTTPStatus.FOUND)
async def start_discord_login(
    discord_client: Annotated[Any, Depends(get_discord_client)],
    state_codec: Annotated[Any, Depends(get_oauth_state_codec)],
    redirect_uri: Optional[str] = Query(
        default=None, description="Front-end URL to return to after login."
    ),
    wallet_address: Optional[str] = Query(
        default=None, description="Wallet that will carry the Discord profile."
    ),
) -> Response:
    """Redirect the browser to the Discord consent screen."""
    if not redirect_uri or not wallet_address:
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={"error": "redirect_uri and wallet_address are required"},
            headers=_NO_STORE,
        )

    state = state_codec.encode(
        OAuthState(redirect_uri=redirect_uri, wallet_address=wallet_address)
    )
    authorization_url = discord_client.build_authorization_url(state=state)
    return RedirectResponse(
        url=authorization_url, status_code=HTTPStatus.FOUND, headers=_NO_STORE
    )


@router.get("/auth/callback", status_code=HTTPStatus.FOUND)
async def handle_discord_callback(
    discord_client: Annotated[Any, Depends(get_discord_client)],
    state_codec: Annotated[Any, Depends(get_oauth_state_codec)],
    session_manager: Annotated[Any, Depends(get_session_manager)],
    identity_sync: Annotated[Any, Depends(get_identity_sync_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: Optional[str] = Query(default=None, description="OAuth state token."),
    code: Optional[str] = Query(
        default=None, description="Authorization code returned by Discord."
    ),
) -> Response:
    """Complete the OAuth exchange, open a session and link the wallet."""
    if not state or not code:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Code was not sent in OAuth2 flow.",
        )

    try:
        oauth_state = state_codec.decode(state)
    except InvalidStateError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Invalid OAuth state."
        ) from exc

    try:
        grant = await discord_client.exchange_authorization_code(code)
    except OAuthTokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc
    access_expires_at = grant.expires_at(session_manager.now())

    try:
        profile = await discord_client.get_current_user(grant.access_token)
    except DiscordApiError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc)
        ) from exc

    try:
        session_token = session_manager.create_session(
            profile.id, grant.access_token, grant.refresh_token, access_expires_at
        )
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc

    if settings.discord.bot_token:
        try:
            await discord_client.add_guild_member(profile.id, grant.access_token)
        except DiscordApiError:
            # Guild membership is best effort; the login itself succeeded.
            logger.warning(
                "Could not add user to the DAO guild",
                exc_info=True,
                extra={"user_id": profile.id},
            )

    tx_hash = None
    if identity_sync is not None:
        try:
            tx_hash = await identity_sync.sync(oauth_state.wallet_address, profile)
        except IdentitySyncError as exc:
            raise HTTPException(
                status_code=HTTPStatus.BAD_GATEWAY,
                detail="Failed to update chain state.",
            ) from exc

    query = urlencode({"redirect_uri": oauth_state.redirect_uri, "user_id": profile.id})
    response = RedirectResponse(
        url=f"{settings.login_complete_url}?{query}",
        status_code=HTTPStatus.FOUND,
        headers=_NO_STORE,
    )
    _set_session_cookie(
        response,
        session_token,
        max_age=settings.security.session_ttl_seconds,
        secure=settings.security.cookie_secure,
    )
    logger.info(
        "Completed Discord login",
        extra={"user_id": profile.id, "tx_hash": tx_hash},
    )
    return response


@router.post("/auth/logout", response_model=LogoutResponse)
async def logout(
    session_manager: Annotated[Any, Depends(get_session_manager)],
    settings: Annotated[Any, Depends(get_app_settings)],
    user_id: Optional[str] = Query(default=None, description="Discord user identifier."),
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> Response:
    """Delete the user's credentials when the session cookie matches, then clear it."""
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="user_id is required"
        )

    try:
        # An expired but matching cookie still logs out.
        if session_token and session_manager.session_matches(user_id, session_token):
            session_manager.logout(user_id)
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc

    response = JSONResponse(
        content=LogoutResponse().model_dump(), headers={"Cache-Control": "no-store"}
    )
    _set_session_cookie(
        response, "", max_age=0, secure=settings.security.cookie_secure
    )
    return response


@router.post("/identity", response_model=IdentitySyncResponse)
async def sync_discord_identity(
    payload: IdentitySyncRequest,
    discord_client: Annotated[Any, Depends(get_discord_client)],
    session_manager: Annotated[Any, Depends(get_session_manager)],
    identity_sync: Annotated[Any, Depends(get_identity_sync_service)],
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> IdentitySyncResponse:
    """Write the session owner's current Discord profile to a wallet."""
    if identity_sync is None:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Identity contract is not configured.",
        )

    try:
        access_token = await session_manager.get_valid_access_token_with_session(
            payload.user_id, session_token or ""
        )
    except (InvalidSessionError, NoSuchUserError, RefreshFailedError) as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Discord login required.",
        ) from exc
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc

    try:
        profile = await discord_client.get_current_user(access_token)
    except DiscordApiError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc)
        ) from exc

    if profile.id != payload.user_id:
        raise HTTPException(
            status_code=HTTPStatus.FORBIDDEN,
            detail="Session does not belong to the requested user.",
        )

    try:
        tx_hash = await identity_sync.sync(payload.wallet_address, profile)
    except IdentitySyncError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY, detail="Failed to update chain state."
        ) from exc

    return IdentitySyncResponse(tx_hash=tx_hash)


@router.post("/uploads/image", response_model=ImageUploadResponse)
async def create_image_upload(
    presigner: Annotated[Any, Depends(get_image_presigner)],
) -> ImageUploadResponse:
    """Return a presigned S3 POST form for a profile image."""
    try:
        upload = presigner.create_presigned_post()
    except ImageUploadError as exc:
        logger.error("Error generating presigned post: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Something went wrong",
        ) from exc
    return ImageUploadResponse(**upload)
