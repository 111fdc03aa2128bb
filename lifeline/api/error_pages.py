"""Error Pages — renders an ErrorResponse as an HTML page or a JSON payload.

Invariants:
    - HTML requests get a page with title + numeric status; JSON requests get
      the payload ({"error": ...} at minimum) with the same status
    - message and trace appear ONLY when the response carries DebugDetail
    - Templates are autoescaped: error messages can contain request data
"""

from jinja2 import Environment, PackageLoader, select_autoescape
from starlette.responses import HTMLResponse, JSONResponse, Response

from lifeline.core.dispatch import ErrorResponse
from lifeline.core.request_context import RequestContext

ERROR_TEMPLATE = "error.html"
DEBUG_TEMPLATE = "debug.html"


def default_templates() -> Environment:
    return Environment(
        loader=PackageLoader("lifeline", "templates"),
        autoescape=select_autoescape(["html"]),
    )


class ErrorPageRenderer:
    """Content-negotiated rendering of dispatcher output."""

    def __init__(self, templates: Environment | None = None):
        self._templates = templates or default_templates()

    def render(self, response: ErrorResponse, context: RequestContext) -> Response:
        if context.wants_html:
            return self._render_html(response)
        return self._render_json(response)

    def _render_html(self, response: ErrorResponse) -> HTMLResponse:
        variables = {"title": response.title, "status": response.status}
        if response.debug is not None:
            template = self._templates.get_template(DEBUG_TEMPLATE)
            variables.update(
                message=response.debug.message, trace=response.debug.trace,
            )
        else:
            template = self._templates.get_template(ERROR_TEMPLATE)
        return HTMLResponse(
            template.render(**variables),
            status_code=response.status,
            headers=response.headers,
        )

    def _render_json(self, response: ErrorResponse) -> JSONResponse:
        content = dict(response.payload)
        if response.debug is not None:
            content["message"] = response.debug.message
            content["trace"] = response.debug.trace
        return JSONResponse(
            content, status_code=response.status, headers=response.headers,
        )
