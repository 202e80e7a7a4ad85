"""HTTP client for the authentication backend.

:class:`AuthAPIClient` wraps :class:`httpx.AsyncClient` and maps transport
and status failures onto the :mod:`arcauth.exceptions` taxonomy.

Example::

    from arcauth.client import create_api_client

    api = create_api_client(configuration)
    if api is not None:
        async with api:
            tokens = await api.verify_apple_credential(payload)
"""

from arcauth.client.api_client import AuthAPIClient, create_api_client

__all__ = ["AuthAPIClient", "create_api_client"]
