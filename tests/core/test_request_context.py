"""Request Context — tests for content negotiation and the log record snapshot.

Tests cover:
    - wants_html true only for explicit, preferred text/html
    - Wildcards and missing headers select the structured payload
    - q-values decide between text/html and application/json
    - LogRecord.capture copies context fields
"""

from datetime import datetime, timezone

from lifeline.core.request_context import LogRecord, RequestContext, wants_html


BROWSER_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "image/avif,image/webp,*/*;q=0.8"
)


def test_browser_accept_wants_html():
    assert wants_html(BROWSER_ACCEPT) is True


def test_missing_accept_does_not_want_html():
    assert wants_html(None) is False
    assert wants_html("") is False


def test_wildcard_does_not_select_html():
    assert wants_html("*/*") is False
    assert wants_html("text/*") is False


def test_json_client_does_not_want_html():
    assert wants_html("application/json") is False


def test_json_preferred_over_html_by_q_value():
    assert wants_html("text/html;q=0.5, application/json") is False


def test_html_preferred_over_json_by_q_value():
    assert wants_html("application/json;q=0.4, text/html") is True


def test_html_with_zero_q_is_refused():
    assert wants_html("text/html;q=0, */*") is False


def test_media_type_match_is_case_insensitive():
    assert wants_html("Text/HTML") is True


def test_malformed_q_value_treated_as_refusal():
    assert wants_html("text/html;q=abc") is False


def test_context_defaults():
    context = RequestContext(method="GET", path="/")
    assert context.status_code == 200
    assert context.wants_html is False


def test_log_record_captures_context():
    t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    context = RequestContext(method="PUT", path="/a", status_code=201)
    record = LogRecord.capture(context, t, 0.25)
    assert record == LogRecord("PUT", "/a", 201, t, 0.25)
