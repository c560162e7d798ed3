"""Request/response schemas for auth endpoints and the identities passed between guards and services."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from shiftpay.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)

GENERIC_FORGOT_PASSWORD_MESSAGE = (
    "If the account exists, a password reset link has been sent."
)


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(
        ..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN, description="Username"
    )
    password: str = Field(
        ..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password"
    )


class RegisterRequest(BaseModel):
    """New account plus its employee profile, branch links and roles."""

    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=1, max_length=32)
    email: EmailStr | None = None
    address: str | None = Field(default=None, max_length=1024)
    date_of_birth: date | None = None
    probation_start_date: date | None = None
    official_start_date: date | None = None
    role_ids: list[int] = Field(
        default_factory=list,
        description="Role ids to assign (admin route only); the default role is used when empty",
    )
    branch_ids: list[int] = Field(default_factory=list, description="Branch ids to link")


class RefreshTokenRequest(BaseModel):
    """Refresh token presented in the request body."""

    refresh_token: str | None = Field(
        default=None,
        description="Refresh token from login or refresh; the refresh_token cookie is used when omitted",
    )


class ForgotPasswordRequest(BaseModel):
    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=512, description="Reset token from the reset link")
    new_password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="New password",
    )


class TokenPairResponse(BaseModel):
    """Access and refresh tokens returned by login and refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token; exchangeable once")
    token_type: str = Field(default="bearer", description="Token type")


class MessageResponse(BaseModel):
    message: str


class AuthenticatedUser(BaseModel):
    """Resolved caller identity (never includes the password hash)."""

    id: int
    username: str
    employee_id: int | None = None
    roles: list[str] = Field(default_factory=list)
    # Stable id of the login session the token belongs to; survives rotation.
    session_id: str | None = None


class RefreshSession(AuthenticatedUser):
    """Identity resolved from a refresh token plus the matched record id (changes on rotation)."""

    token_id: str


class SessionInfo(BaseModel):
    """One live device session (refresh-token record) without its hash."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    expires_at: datetime


class ActiveSessionsResponse(BaseModel):
    sessions: list[SessionInfo]


class RegisteredUserResponse(BaseModel):
    """Account created by POST /auth/register or POST /auth/users."""

    id: int
    username: str
    employee_id: int | None
    status: str
    roles: list[str]
    branch_ids: list[int]


class CleanupResponse(BaseModel):
    refresh_tokens_deleted: int
    reset_tokens_deleted: int
