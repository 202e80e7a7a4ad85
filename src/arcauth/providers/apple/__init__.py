"""Sign in with Apple provider and its platform collaborator types."""

from arcauth.providers.apple.provider import (
    AppleAuthorizationController,
    AppleAuthorizationDelegate,
    AppleAuthorizationErrorCode,
    AppleAuthorizationFailure,
    AppleAuthProvider,
    AppleIDCredential,
    AppleIDRequest,
    generate_nonce,
    map_authorization_error,
    sha256_hex,
)

__all__ = [
    "AppleAuthProvider",
    "AppleAuthorizationController",
    "AppleAuthorizationDelegate",
    "AppleAuthorizationErrorCode",
    "AppleAuthorizationFailure",
    "AppleIDCredential",
    "AppleIDRequest",
    "generate_nonce",
    "map_authorization_error",
    "sha256_hex",
]
