"""Tests for authentication header builders."""

from gqlbind.core.auth import (
    DEFAULT_TOKEN_NAME,
    Auth,
    HeaderAuth,
    TokenAuth,
    combine_headers,
    token_header_value,
)


class TestTokenHeaderValue:
    """Tests for token_header_value."""

    def test_default_scheme(self):
        assert token_header_value("abc") == "Bearer abc"

    def test_custom_scheme(self):
        assert token_header_value("abc", "Token") == "Token abc"

    def test_empty_scheme_trimmed(self):
        """No leading space when the scheme is empty."""
        assert token_header_value("abc", "") == "abc"

    def test_falsy_token(self):
        assert token_header_value(None) is None
        assert token_header_value("") is None


class TestTokenAuth:
    """Tests for TokenAuth."""

    def test_bearer(self):
        auth = TokenAuth("secret")
        assert auth.get_headers() == {DEFAULT_TOKEN_NAME: "Bearer secret"}

    def test_custom_header(self):
        """Test a raw API key in a custom header."""
        auth = TokenAuth("key123", name="X-Api-Key", scheme="")
        assert auth.get_headers() == {"X-Api-Key": "key123"}

    def test_no_token(self):
        assert TokenAuth(None).get_headers() == {}


class TestHeaderAuth:
    """Tests for HeaderAuth."""

    def test_multiple_headers(self):
        auth = HeaderAuth({"X-Tenant-ID": "tenant456", "X-Request-ID": "req789"})
        assert auth.get_headers() == {"X-Tenant-ID": "tenant456", "X-Request-ID": "req789"}

    def test_returns_copy(self):
        """Test that get_headers returns a copy."""
        auth = HeaderAuth({"X-Key": "value"})
        headers = auth.get_headers()
        headers["X-New"] = "new"

        assert "X-New" not in auth.get_headers()


class TestCombineHeaders:
    """Tests for combine_headers."""

    def test_later_wins(self):
        headers = combine_headers(
            HeaderAuth({"Authorization": "static", "X-App": "web"}),
            TokenAuth("abc"),
        )
        assert headers == {"Authorization": "Bearer abc", "X-App": "web"}

    def test_empty(self):
        assert combine_headers() == {}


class TestAuthProtocol:
    """Tests for Auth protocol compliance."""

    def test_token_auth_is_auth(self):
        assert isinstance(TokenAuth("token"), Auth)

    def test_header_auth_is_auth(self):
        assert isinstance(HeaderAuth({}), Auth)

    def test_custom_auth_class(self):
        """Test custom auth class implements protocol."""
        class CustomAuth:
            def get_headers(self):
                return {"X-Custom": "value"}

        auth = CustomAuth()
        assert isinstance(auth, Auth)
        assert combine_headers(auth) == {"X-Custom": "value"}
