# tests/webapp/test_server.py
import base64
import gzip
import json
from unittest.mock import AsyncMock, patch

import pytest

from analyzer.errors import (
    AnalysisTimeoutError,
    DocumentParseError,
    FetchBadStatusError,
    FetchTransportError,
)
from analyzer.model import HeadingCounts, PageReport
from webanalyzer.server.app import API_PREFIX, create_app

REPORT = PageReport(
    html_version="HTML5",
    page_title="Example",
    heading_counts=HeadingCounts(h1=1),
    internal_link_count=2,
    external_link_count=1,
    inaccessible_link_count=1,
    has_login_form=True,
)


def make_config(**server):
    base = {"rate_limit_per_second": 1.0, "rate_limit_burst": 100, "basic_auth_user": "", "basic_auth_pass": ""}
    base.update(server)
    return {"analyzer": {"max_probe_workers": 4}, "server": base}


@pytest.fixture
def client():
    return create_app(make_config()).test_client()


@pytest.fixture
def mock_controller():
    with patch("webanalyzer.server.routers.analyze_router.AnalysisController") as controller_cls:
        instance = controller_cls.return_value
        instance.analyze = AsyncMock(return_value=REPORT)
        yield instance


def test_health(client):
    resp = client.get(f"{API_PREFIX}/health")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_analyze_missing_url(client):
    resp = client.get(f"{API_PREFIX}/analyze")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "missing 'url' query parameter"


@pytest.mark.parametrize("url", ["example.com", "ftp://example.com", "https://"])
def test_analyze_invalid_url(client, url):
    resp = client.get(f"{API_PREFIX}/analyze", query_string={"url": url})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "invalid 'url' format"


def test_analyze_success(client, mock_controller):
    resp = client.get(f"{API_PREFIX}/analyze", query_string={"url": "https://example.com"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "OK"
    assert body["status_code"] == 200
    assert body["data"] == REPORT.model_dump()
    mock_controller.analyze.assert_awaited_once_with("https://example.com")


@pytest.mark.parametrize("exc, status_code", [
    (FetchBadStatusError("https://example.com", 404), 502),
    (FetchTransportError("https://example.com", "connection refused"), 502),
    (AnalysisTimeoutError("https://example.com", "timed out"), 504),
    (DocumentParseError("https://example.com", "bad markup"), 500),
])
def test_analyze_failure_mapping(client, mock_controller, exc, status_code):
    mock_controller.analyze.side_effect = exc

    resp = client.get(f"{API_PREFIX}/analyze", query_string={"url": "https://example.com"})

    assert resp.status_code == status_code
    body = resp.get_json()
    assert body["data"]["error"] == exc.kind
    assert body["message"].startswith("failed to analyze page")


def test_rate_limit(mock_controller):
    client = create_app(make_config(rate_limit_burst=2)).test_client()
    codes = [client.get(f"{API_PREFIX}/health").status_code for _ in range(3)]
    assert codes == [200, 200, 429]


def test_rate_limit_uses_forwarded_address(mock_controller):
    client = create_app(make_config(rate_limit_burst=1)).test_client()
    first = client.get(f"{API_PREFIX}/health", headers={"X-Forwarded-For": "10.0.0.1"})
    second = client.get(f"{API_PREFIX}/health", headers={"X-Forwarded-For": "10.0.0.2, 10.0.0.9"})
    assert (first.status_code, second.status_code) == (200, 200)


def test_rate_limiter_is_per_app():
    a = create_app(make_config(rate_limit_burst=1))
    b = create_app(make_config(rate_limit_burst=1))
    assert a.config["RATE_LIMITER"] is not b.config["RATE_LIMITER"]


def _auth_header(user, password):
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def test_basic_auth_required_when_configured(mock_controller):
    client = create_app(make_config(basic_auth_user="admin", basic_auth_pass="s3cret")).test_client()
    url = f"{API_PREFIX}/analyze"
    query = {"url": "https://example.com"}

    denied = client.get(url, query_string=query)
    wrong = client.get(url, query_string=query, headers=_auth_header("admin", "nope"))
    allowed = client.get(url, query_string=query, headers=_auth_header("admin", "s3cret"))
    health = client.get(f"{API_PREFIX}/health")

    assert denied.status_code == 401
    assert "Basic" in denied.headers["WWW-Authenticate"]
    assert wrong.status_code == 401
    assert allowed.status_code == 200
    assert health.status_code == 200


def test_unknown_route_uses_envelope(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "not found"


def test_method_not_allowed(client):
    resp = client.post(f"{API_PREFIX}/analyze")
    assert resp.status_code == 405


def test_requests_are_counted_per_route(client):
    client.get(f"{API_PREFIX}/health")
    client.get(f"{API_PREFIX}/health")
    client.get(f"{API_PREFIX}/analyze")
    client.get("/nope")

    registry = client.application.config["METRICS"].registry
    count = registry.get_sample_value
    assert count("http_requests_total", {"path": f"{API_PREFIX}/health", "method": "GET", "status": "200"}) == 2
    assert count("http_requests_total", {"path": f"{API_PREFIX}/analyze", "method": "GET", "status": "400"}) == 1
    assert count("http_requests_total", {"path": "<unmatched>", "method": "GET", "status": "404"}) == 1
    assert count("http_request_duration_seconds_count", {"path": f"{API_PREFIX}/health"}) == 2


def test_rejected_requests_are_counted():
    client = create_app(make_config(rate_limit_burst=1)).test_client()
    client.get(f"{API_PREFIX}/health")
    client.get(f"{API_PREFIX}/health")

    registry = client.application.config["METRICS"].registry
    labels = {"path": f"{API_PREFIX}/health", "method": "GET"}
    assert registry.get_sample_value("http_requests_total", {**labels, "status": "429"}) == 1


def test_metrics_exposition(client):
    client.get(f"{API_PREFIX}/health")
    payload, content_type = client.application.config["METRICS"].render()

    assert content_type.startswith("text/plain")
    assert b"http_requests_total" in payload
    assert b"http_request_duration_seconds_bucket" in payload


def test_metrics_are_per_app():
    a = create_app(make_config())
    b = create_app(make_config())
    a.test_client().get(f"{API_PREFIX}/health")

    labels = {"path": f"{API_PREFIX}/health", "method": "GET", "status": "200"}
    assert a.config["METRICS"].registry.get_sample_value("http_requests_total", labels) == 1
    assert b.config["METRICS"].registry.get_sample_value("http_requests_total", labels) is None


def test_cors_headers_on_api_responses(client):
    resp = client.get(f"{API_PREFIX}/health", headers={"Origin": "https://app.example.com"})
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_cors_preflight_skips_auth(mock_controller):
    client = create_app(make_config(basic_auth_user="admin", basic_auth_pass="s3cret")).test_client()
    resp = client.options(
        f"{API_PREFIX}/analyze",
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "Authorization",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "GET" in resp.headers["Access-Control-Allow-Methods"]
    mock_controller.analyze.assert_not_called()


def test_cors_restricted_origins():
    client = create_app(make_config(cors_allowed_origins=["https://allowed.example.com"])).test_client()
    allowed = client.get(f"{API_PREFIX}/health", headers={"Origin": "https://allowed.example.com"})
    denied = client.get(f"{API_PREFIX}/health", headers={"Origin": "https://evil.example.com"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "https://allowed.example.com"
    assert "Access-Control-Allow-Origin" not in denied.headers


def test_responses_are_gzip_compressed(mock_controller):
    client = create_app(make_config(compress_min_size=0)).test_client()
    resp = client.get(
        f"{API_PREFIX}/analyze",
        query_string={"url": "https://example.com"},
        headers={"Accept-Encoding": "gzip"},
    )

    assert resp.status_code == 200
    assert resp.headers["Content-Encoding"] == "gzip"
    assert json.loads(gzip.decompress(resp.data))["data"] == REPORT.model_dump()


def test_small_responses_are_not_compressed(client):
    resp = client.get(f"{API_PREFIX}/health", headers={"Accept-Encoding": "gzip"})
    assert "Content-Encoding" not in resp.headers
    assert resp.get_json()["data"] == {"status": "ok"}
