"""Canonical Pydantic models shared across all arcauth modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Credential models** -- produced by identity providers and persisted by the
credential store:
    :class:`AuthProvider`, :class:`CredentialState`, :class:`ServerTokens`,
    and :class:`AuthCredential`.

**Backend DTOs** -- request and response bodies exchanged with the
authentication backend by :class:`~arcauth.client.AuthAPIClient`:
    :class:`FullName`, :class:`RealUserStatus`, :class:`AppleAuthPayload`,
    :class:`RefreshTokenRequest`, :class:`LoginRequest`,
    :class:`SignUpRequest`, :class:`TokenResponse`, :class:`UserDTO`, and
    :class:`UserProfileDTO`.

**Configuration** -- :class:`AuthenticationConfiguration`.

Credential models and DTOs serialise with camelCase JSON keys and ISO-8601
dates. Token bytes (``identity_token``, ``authorization_code``) are encoded
as base64 strings in JSON.
"""

from __future__ import annotations

import base64
import enum
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from arcauth.constants import TOKEN_REFRESH_THRESHOLD
from arcauth.exceptions import InvalidIdentityTokenError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# --- Credential models ---


class AuthProvider(str, enum.Enum):
    """Identity providers a credential can originate from."""

    APPLE = "apple"
    GOOGLE = "google"
    EMAIL = "email"

    @property
    def display_name(self) -> str:
        return {"apple": "Apple", "google": "Google", "email": "Email"}[self.value]


class CredentialState(str, enum.Enum):
    """Provider-reported state of a previously issued credential."""

    AUTHORIZED = "authorized"
    REVOKED = "revoked"
    NOT_FOUND = "not_found"
    TRANSFERRED = "transferred"


class ServerTokens(_WireModel):
    """Access/refresh token pair issued by the backend.

    Instances are never mutated; a refresh produces a new instance that
    replaces the old one.
    """

    access_token: str
    refresh_token: str
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        """``True`` once the current time reaches :attr:`expires_at`."""
        return _utcnow() >= _as_utc(self.expires_at)

    @property
    def will_expire_soon(self) -> bool:
        """``True`` when the token expires within the refresh threshold (5 minutes)."""
        threshold = timedelta(seconds=TOKEN_REFRESH_THRESHOLD)
        return _utcnow() + threshold >= _as_utc(self.expires_at)


class AuthCredential(_WireModel):
    """Result of any successful authentication, whatever the provider.

    ``user_id`` and ``provider`` together identify a local session.
    ``email`` and ``display_name`` are typically only supplied the first
    time a user signs in with Apple, so they should be persisted
    immediately. ``identity_token`` is a JWT meant for backend
    verification; ``authorization_code`` is only valid for five minutes.

    ``identity_token`` and ``authorization_code`` take ``bytes``. A ``str``
    is only accepted as strict base64 (the JSON wire form); anything else
    fails validation.

    The model is frozen and hashes structurally. Use
    :meth:`with_server_tokens` to attach backend tokens after creation.

    Example::

        credential = AuthCredential(
            user_id="001234.abc",
            email="user@example.com",
            provider=AuthProvider.APPLE,
            identity_token=b"eyJ...",
        )
    """

    user_id: str = Field(alias="userID")
    email: Optional[str] = None
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = Field(default=None, alias="profileImageURL")
    provider: AuthProvider
    identity_token: Optional[bytes] = None
    authorization_code: Optional[bytes] = None
    server_tokens: Optional[ServerTokens] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def id(self) -> str:
        return self.user_id

    @field_validator("identity_token", "authorization_code", mode="before")
    @classmethod
    def _decode_token_bytes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return base64.b64decode(value, validate=True)
        return value

    @field_serializer("identity_token", "authorization_code", when_used="json-unless-none")
    def _encode_token_bytes(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    def with_server_tokens(self, tokens: Optional[ServerTokens]) -> AuthCredential:
        """Return a copy of this credential with *tokens* attached."""
        return self.model_copy(update={"server_tokens": tokens})


# --- Backend DTOs ---


class FullName(_WireModel):
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    nickname: Optional[str] = None

    @property
    def formatted(self) -> Optional[str]:
        """Given and family name joined by a space, or ``None`` if both are empty."""
        parts = [p for p in (self.given_name, self.family_name) if p]
        return " ".join(parts) or None


class RealUserStatus(enum.IntEnum):
    """Apple's fraud-likelihood classification for the signing-in account."""

    UNSUPPORTED = 0
    UNKNOWN = 1
    LIKELY_REAL = 2


class AppleAuthPayload(_WireModel):
    """Body sent to the backend to verify a Sign in with Apple result.

    Carries everything the server needs to verify the JWT with Apple,
    create or update the user, and mint its own session tokens.
    """

    identity_token: str
    authorization_code: str
    full_name: Optional[FullName] = None
    email: Optional[str] = None
    user_identifier: str
    real_user_status: RealUserStatus

    @classmethod
    def from_credential(
        cls,
        credential: AuthCredential,
        full_name: Optional[FullName] = None,
        real_user_status: RealUserStatus = RealUserStatus.UNKNOWN,
    ) -> AppleAuthPayload:
        """Build a payload from an Apple :class:`AuthCredential`.

        Raises:
            InvalidIdentityTokenError: If the credential lacks an identity
                token or authorization code, or they are not UTF-8.
        """
        if credential.identity_token is None or credential.authorization_code is None:
            raise InvalidIdentityTokenError()
        try:
            identity_token = credential.identity_token.decode("utf-8")
            authorization_code = credential.authorization_code.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidIdentityTokenError(exc) from exc
        return cls(
            identity_token=identity_token,
            authorization_code=authorization_code,
            full_name=full_name,
            email=credential.email,
            user_identifier=credential.user_id,
            real_user_status=real_user_status,
        )


class RefreshTokenRequest(_WireModel):
    refresh_token: str


class LoginRequest(_WireModel):
    """Email/password sign-in body."""

    email: str
    password: str


class SignUpRequest(_WireModel):
    """Email/password registration body."""

    email: str
    password: str
    display_name: Optional[str] = None


class UserDTO(_WireModel):
    """User record as returned by the backend."""

    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None
    profile_image_url: Optional[str] = Field(default=None, alias="profileImageURL")
    provider: AuthProvider
    created_at: datetime
    updated_at: datetime


class UserProfileDTO(_WireModel):
    """Extended user profile."""

    id: UUID
    email: Optional[str] = None
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = Field(default=None, alias="profileImageURL")
    provider: AuthProvider
    is_email_verified: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None


class TokenResponse(_WireModel):
    """Backend response after a successful verification or refresh."""

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"
    user: UserDTO

    @property
    def expires_at(self) -> datetime:
        """Expiry instant computed from now plus :attr:`expires_in`."""
        return _utcnow() + timedelta(seconds=self.expires_in)

    def to_server_tokens(self) -> ServerTokens:
        return ServerTokens(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at,
        )


# --- Configuration ---


class AuthenticationConfiguration(BaseModel):
    """Settings for :class:`~arcauth.auth.manager.AuthenticationManager`.

    Serialised as ``config.json`` in the arcauth config directory and
    overridable through ``ARCAUTH_*`` environment variables (see
    :func:`arcauth.config.load_configuration`).
    """

    server_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the authentication backend; enables backend calls",
    )
    verify_apple_credentials_on_restore: bool = Field(
        default=True,
        description="Ask the provider for revocation status when restoring a session",
    )
    persist_display_name_in_preferences: bool = Field(
        default=True,
        description="Keep the display name in the preference store after sign-in",
    )
