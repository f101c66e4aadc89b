"""Authentication header builders for GraphQL clients.

Every client carries a token configuration (header name, scheme and secret)
and an optional set of static headers. These helpers turn that configuration
into request headers for schema introspection and runtime requests.
"""

from typing import Dict, Optional, Protocol, runtime_checkable

DEFAULT_TOKEN_NAME = "Authorization"
DEFAULT_TOKEN_TYPE = "Bearer"


@runtime_checkable
class Auth(Protocol):
    """Protocol for authentication handlers.

    Example:
        class TenantAuth:
            def __init__(self, tenant: str):
                self.tenant = tenant

            def get_headers(self) -> dict[str, str]:
                return {"X-Tenant-ID": self.tenant}
    """

    def get_headers(self) -> Dict[str, str]:
        """Return headers to include in requests."""
        ...


def token_header_value(token: Optional[str], scheme: str = DEFAULT_TOKEN_TYPE) -> Optional[str]:
    """Join scheme and token with a single space.

    Returns None for a falsy token so callers can unset the header.

    Example:
        token_header_value("abc")          # "Bearer abc"
        token_header_value("abc", "")      # "abc"
        token_header_value(None)           # None
    """
    if not token:
        return None
    return f"{scheme} {token}".strip()


class TokenAuth:
    """Token authentication with a configurable header name and scheme.

    Args:
        token: The secret, or None for no header
        name: Header name (default: "Authorization")
        scheme: Scheme prefix (default: "Bearer", may be empty)

    Example:
        auth = TokenAuth("eyJhbGciOiJIUzI1NiIs...")
        auth = TokenAuth("key", name="X-Api-Key", scheme="")
    """

    def __init__(
        self,
        token: Optional[str],
        name: str = DEFAULT_TOKEN_NAME,
        scheme: str = DEFAULT_TOKEN_TYPE,
    ):
        self.token = token
        self.name = name
        self.scheme = scheme

    def get_headers(self) -> Dict[str, str]:
        value = token_header_value(self.token, self.scheme)
        if value is None:
            return {}
        return {self.name: value}


class HeaderAuth:
    """Static headers.

    Args:
        headers: Dictionary of headers to include
    """

    def __init__(self, headers: Dict[str, str]):
        self._headers = headers

    def get_headers(self) -> Dict[str, str]:
        return self._headers.copy()


def combine_headers(*auths: Auth) -> Dict[str, str]:
    """Merge headers from several handlers; later handlers win."""
    headers: Dict[str, str] = {}
    for auth in auths:
        headers.update(auth.get_headers())
    return headers
