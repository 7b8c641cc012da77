"""Tests for request middleware, client address resolution and log masking."""

from collections.abc import Callable

from fastapi.testclient import TestClient
from starlette.requests import Request

from commentbox.config.settings import Settings
from commentbox.core.logging import filter_sensitive_data
from commentbox.core.middleware import resolve_client_ip


def make_request(headers: dict[str, str], client: tuple[str, int] | None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


class TestResolveClientIp:
    PROXIES = frozenset({"10.0.0.1", "10.0.0.2"})

    def test_forwarded_header_believed_from_trusted_proxy(self) -> None:
        request = make_request(
            {"X-Forwarded-For": "198.51.100.7, 10.0.0.2"}, ("10.0.0.1", 1234)
        )
        assert resolve_client_ip(request, self.PROXIES) == "198.51.100.7"

    def test_trusted_hops_are_skipped(self) -> None:
        request = make_request(
            {"X-Forwarded-For": "10.0.0.2, 198.51.100.7"}, ("10.0.0.1", 1234)
        )
        assert resolve_client_ip(request, self.PROXIES) == "198.51.100.7"

    def test_forwarded_header_ignored_from_untrusted_peer(self) -> None:
        request = make_request(
            {"X-Forwarded-For": "198.51.100.7"}, ("203.0.113.5", 1234)
        )
        assert resolve_client_ip(request, self.PROXIES) == "203.0.113.5"

    def test_nothing_trusted_by_default(self) -> None:
        request = make_request({"X-Forwarded-For": "198.51.100.7"}, ("10.0.0.1", 1))
        assert resolve_client_ip(request) == "10.0.0.1"

    def test_falls_back_to_peer(self) -> None:
        request = make_request({}, ("10.0.0.1", 1234))
        assert resolve_client_ip(request, self.PROXIES) == "10.0.0.1"

    def test_blank_forwarded_header_is_ignored(self) -> None:
        request = make_request({"X-Forwarded-For": " , "}, ("10.0.0.1", 1234))
        assert resolve_client_ip(request, self.PROXIES) == "10.0.0.1"

    def test_unknown_address(self) -> None:
        assert resolve_client_ip(make_request({}, None), self.PROXIES) == ""


class TestFilterSensitiveData:
    def test_tokens_are_masked(self) -> None:
        event = filter_sensitive_data(
            None,
            "info",
            {"event": "x", "admin_token": "super-secret", "authorization": "abc"},
        )
        assert event["admin_token"] == "su********et"
        assert event["authorization"] == "***"
        assert event["event"] == "x"

    def test_nested_values_are_masked(self) -> None:
        event = filter_sensitive_data(
            None, "info", {"headers": {"Authorization": "Bearer xyz"}}
        )
        assert event["headers"]["Authorization"] != "Bearer xyz"

    def test_non_string_values_pass_through(self) -> None:
        event = filter_sensitive_data(None, "info", {"token_count": 3})
        assert event["token_count"] == 3


class TestRequestContextMiddleware:
    def test_request_id_is_generated(self, client: TestClient) -> None:
        response = client.get("/health/live")
        assert response.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestBodySizeLimit:
    def test_small_limit_rejects_body(
        self,
        settings_factory: Callable[..., Settings],
        client_factory: Callable[..., TestClient],
    ) -> None:
        client = client_factory(settings_factory(body_limit_bytes=64))

        response = client.post(
            "/api/comments", json={"name": "Ann", "message": "x" * 100}
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Payload too large"}

    def test_body_under_limit_is_accepted(self, client: TestClient) -> None:
        response = client.post(
            "/api/comments",
            json={"name": "Ann", "message": "x" * 3000},
        )
        assert response.status_code == 201


class TestErrorResponses:
    def test_unknown_route_is_json(self, client: TestClient) -> None:
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_unhandled_exception_hides_details(
        self,
        settings: Settings,
        client_factory: Callable[..., TestClient],
    ) -> None:
        client = client_factory(settings, raise_server_exceptions=False)

        class ExplodingStore:
            async def query_approved(self, *_: object) -> None:
                msg = "secret internal detail"
                raise RuntimeError(msg)

        client.app.state.comment_store = ExplodingStore()

        response = client.get("/api/comments")

        assert response.status_code == 500
        assert response.json() == {"error": "Server error"}
        assert "secret" not in response.text


def test_cors_allows_configured_origin(
    settings_factory: Callable[..., Settings],
    client_factory: Callable[..., TestClient],
) -> None:
    origin = "https://blog.example"
    client = client_factory(settings_factory(origin=origin))

    response = client.get("/api/comments", headers={"Origin": origin})

    assert response.headers["access-control-allow-origin"] == origin
