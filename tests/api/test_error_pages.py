"""Error Pages — tests for content-negotiated rendering of ErrorResponse.

Tests cover:
    - HTML requests get a page with title and status
    - JSON requests get the payload with the same status
    - Debug detail rendered only when present
    - Message text is HTML-escaped
    - Headers copied from the ErrorResponse
"""

import json

from lifeline.api.error_pages import ErrorPageRenderer
from lifeline.core.dispatch import DebugDetail, ErrorResponse
from lifeline.core.request_context import RequestContext

HTML = RequestContext(method="GET", path="/", wants_html=True)
JSON = RequestContext(method="GET", path="/", wants_html=False)


def _body(response) -> str:
    return response.body.decode("utf-8")


def test_html_page_has_title_and_status():
    response = ErrorPageRenderer().render(
        ErrorResponse(status=404, title="Not Found"), HTML,
    )
    assert response.status_code == 404
    assert response.media_type == "text/html"
    body = _body(response)
    assert "404" in body
    assert "Not Found" in body
    assert "Traceback" not in body


def test_json_payload_with_same_status():
    response = ErrorPageRenderer().render(
        ErrorResponse(status=409, title="Conflict", payload={"code": "DUP"}), JSON,
    )
    assert response.status_code == 409
    assert json.loads(_body(response)) == {"error": "Conflict", "code": "DUP"}


def test_html_debug_page_shows_message_and_trace():
    debug = DebugDetail(message="ValueError: boom", trace="Traceback (most recent call last): ...")
    response = ErrorPageRenderer().render(
        ErrorResponse(status=500, title="Internal Server Error", debug=debug), HTML,
    )
    body = _body(response)
    assert "ValueError: boom" in body
    assert "Traceback (most recent call last)" in body


def test_json_debug_adds_message_and_trace():
    debug = DebugDetail(message="ValueError: boom", trace="tb")
    response = ErrorPageRenderer().render(
        ErrorResponse(status=500, title="Internal Server Error", debug=debug), JSON,
    )
    assert json.loads(_body(response)) == {
        "error": "Internal Server Error", "message": "ValueError: boom", "trace": "tb",
    }


def test_debug_message_is_escaped():
    debug = DebugDetail(message="<script>alert(1)</script>", trace="")
    response = ErrorPageRenderer().render(
        ErrorResponse(status=500, title="Internal Server Error", debug=debug), HTML,
    )
    body = _body(response)
    assert "<script>alert(1)</script>" not in body
    assert "&lt;script&gt;" in body


def test_headers_copied():
    response = ErrorPageRenderer().render(
        ErrorResponse(status=401, title="Unauthorized", headers={"WWW-Authenticate": "Bearer"}),
        JSON,
    )
    assert response.headers["www-authenticate"] == "Bearer"
