"""Constants shared by the arcauth storage, token and provider layers."""

CREDENTIAL_SERVICE = "com.arclabs.authentication"
"""Service identifier the default credential store keys its single record by."""

DISPLAY_NAME_KEY = "auth.displayName"
"""Preference key under which the last known display name is kept."""

TOKEN_REFRESH_THRESHOLD = 300.0
"""Seconds before expiry at which server tokens are considered about to expire."""

APPLE_DEFAULT_SCOPES = ("fullName", "email")
