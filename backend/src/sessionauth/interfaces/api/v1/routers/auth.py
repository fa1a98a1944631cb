"""Auth router: register, login, refresh, logout, me, profile, sessions, password, account."""
from fastapi import APIRouter, HTTPException, Request, status

from sessionauth.application.identity.errors import InvalidCredentialError
from sessionauth.application.identity.issuer import IssuedSession
from sessionauth.domain.identity.entities import Account
from sessionauth.interfaces.api.v1.schemas.identity import (
    AccountResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    RevokedResponse,
    SessionResponse,
    TokenResponse,
    UpdateProfileRequest,
)
from sessionauth.interfaces.dependencies import BearerToken, CurrentSession, Facade, client_ip

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(issued: IssuedSession) -> TokenResponse:
    return TokenResponse(access_token=issued.token, expires_at=issued.expires_at)


def _account_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        email=str(account.email),
        status=account.status.value,
        has_password=account.password_hash is not None,
        delegated_provider=account.delegated_identity.provider if account.delegated_identity else None,
        created_at=account.created_at,
        last_login_at=account.last_login_at,
        display_name=account.display_name,
        profile_picture_url=account.profile_picture_url,
        preferences=account.preferences,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request, facade: Facade):
    result = await facade.register(
        email=body.email,
        password=body.password,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return _token_response(result.issued)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, facade: Facade):
    issued = await facade.login(
        email=body.email,
        password=body.password,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return _token_response(issued)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(token: BearerToken, request: Request, facade: Facade):
    issued = await facade.refresh(
        token,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return _token_response(issued)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(token: BearerToken, facade: Facade):
    await facade.logout(token)


@router.post("/logout-all", response_model=RevokedResponse)
async def logout_all(current: CurrentSession, facade: Facade):
    revoked = await facade.logout_all(current.account.id)
    return RevokedResponse(revoked=revoked)


@router.get("/me", response_model=AccountResponse)
async def me(current: CurrentSession):
    return _account_response(current.account)


@router.patch("/me", response_model=AccountResponse)
async def update_me(body: UpdateProfileRequest, current: CurrentSession, facade: Facade):
    account = await facade.update_profile(current.account.id, body.model_dump(exclude_unset=True))
    return _account_response(account)


@router.get("/sessions", response_model=list[SessionResponse])
async def sessions(current: CurrentSession, facade: Facade):
    live = await facade.list_sessions(current.account.id)
    return [
        SessionResponse(
            id_prefix=s.id[:8],
            current=s.id == current.session.id,
            issued_at=s.issued_at,
            expires_at=s.expires_at,
            user_agent=s.user_agent,
            ip_address=s.ip_address,
        )
        for s in live
    ]


@router.post("/password", response_model=RevokedResponse)
async def change_password(body: ChangePasswordRequest, current: CurrentSession, facade: Facade):
    try:
        revoked = await facade.change_password(
            current.account.id, body.current_password, body.new_password,
        )
    except InvalidCredentialError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Current password is incorrect")
    return RevokedResponse(revoked=revoked)


@router.delete("/account", response_model=RevokedResponse)
async def delete_account(current: CurrentSession, facade: Facade):
    revoked = await facade.delete_account(current.account.id)
    return RevokedResponse(revoked=revoked)
