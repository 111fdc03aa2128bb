"""Error Dispatch Resolution — maps a raised error to exactly one handler.

Invariants:
    - resolve() is PURE and deterministic: same kind + fixed registry → same handler
    - Resolution order: exact kind → declared ancestors → HttpRespondable
      capability → generic handler → built-in 500 (fails closed)
    - An explicit handler on the kind or any ancestor always beats the capability
    - Registry is immutable after build(); handlers cannot be added mid-request
    - Synthesized and built-in responses never carry internal detail

Design Decisions:
    - Builder + frozen product: registration errors surface at start-up, and
      the single-writer-before-readers rule is enforced by the type
    - ErrorResponse is framework-free; rendering to HTML/JSON happens in api/
"""

from dataclasses import dataclass, field
from http import HTTPStatus
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, Union

from lifeline.core.domain_types import (
    CANCELLED_STATUS, INTERNAL_ERROR_STATUS, ErrorKindId, ResolutionStep,
)
from lifeline.core.error_kinds import ErrorKind, ErrorKindCatalog, builtin_kinds
from lifeline.core.errors import (
    DuplicateErrorKindError, DuplicateHandlerError, HttpRespondable,
    UnknownErrorKindError,
)
from lifeline.core.request_context import RequestContext


GENERIC_HANDLER_NAME = "generic"


@dataclass(frozen=True)
class DebugDetail:
    """Diagnostic material — only ever attached when debug output is enabled."""
    message: str
    trace: str


@dataclass(frozen=True)
class ErrorResponse:
    """The one response a handler produces. payload always carries "error"."""
    status: int
    title: str
    payload: dict = field(default_factory=dict)
    debug: DebugDetail | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if "error" not in self.payload:
            object.__setattr__(self, "payload", {"error": self.title, **self.payload})


ErrorHandler = Callable[
    [BaseException, RequestContext],
    Union[ErrorResponse, Awaitable[ErrorResponse]],
]


# ─── Response Helpers ────────────────────────────────────────────

def reason_phrase(status: int) -> str:
    if status == CANCELLED_STATUS:
        return "Client Closed Request"
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def synthesize_response(status: int) -> ErrorResponse:
    """Generic body for self-describing errors: status from the error, text from HTTP."""
    title = reason_phrase(status)
    return ErrorResponse(status=status, title=title, payload={"error": title})


def builtin_error_response() -> ErrorResponse:
    return synthesize_response(INTERNAL_ERROR_STATUS)


# ─── Registry ────────────────────────────────────────────────────

class ErrorHandlerRegistry:
    """Immutable kind → handler mapping plus the generic fallback."""

    def __init__(
        self,
        catalog: ErrorKindCatalog,
        handlers: Mapping[str, ErrorHandler],
        generic: ErrorHandler | None = None,
    ):
        for kind in handlers:
            if kind not in catalog:
                raise UnknownErrorKindError(kind)
        self.catalog = catalog
        self.handlers = MappingProxyType(dict(handlers))
        self.generic = generic

    @property
    def has_generic(self) -> bool:
        return self.generic is not None

    def handler_for(self, kind: str) -> ErrorHandler | None:
        return self.handlers.get(kind)


class RegistryBuilder:
    """Start-up-only collector; build() hands out the frozen registry."""

    def __init__(self):
        self._kinds: list[ErrorKind] = []
        self._declared: set[str] = {kind.name for kind in builtin_kinds()}
        self._handlers: dict[str, ErrorHandler] = {}
        self._generic: ErrorHandler | None = None

    def declare_kind(
        self,
        name: str,
        extends: str | None = None,
        binds: tuple[type[BaseException], ...] = (),
        http_error_code: int | None = None,
    ) -> "RegistryBuilder":
        if name in self._declared:
            raise DuplicateErrorKindError(name)
        if extends is not None and extends not in self._declared:
            raise UnknownErrorKindError(extends)
        self._kinds.append(ErrorKind(
            ErrorKindId(name),
            ErrorKindId(extends) if extends is not None else None,
            tuple(binds),
            http_error_code,
        ))
        self._declared.add(name)
        return self

    def register(self, kind: str, handler: ErrorHandler) -> "RegistryBuilder":
        if kind not in self._declared:
            raise UnknownErrorKindError(kind)
        if kind in self._handlers:
            raise DuplicateHandlerError(kind)
        self._handlers[kind] = handler
        return self

    def register_generic(self, handler: ErrorHandler) -> "RegistryBuilder":
        if self._generic is not None:
            raise DuplicateHandlerError(GENERIC_HANDLER_NAME)
        self._generic = handler
        return self

    def build(self) -> ErrorHandlerRegistry:
        return ErrorHandlerRegistry(
            ErrorKindCatalog(self._kinds), self._handlers, self._generic,
        )


# ─── Resolution ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Resolution:
    """Outcome of resolve(): either a handler to call or a status to synthesize."""
    step: ResolutionStep
    kind: ErrorKindId | None = None
    handler: ErrorHandler | None = None
    status: int | None = None


def resolve(
    registry: ErrorHandlerRegistry,
    error: BaseException,
    kind_hint: str | None = None,
) -> Resolution:
    """`kind_hint` names the kind an adapter already matched the error to
    (e.g. a Starlette exception handler catching HTTPException subclasses);
    it applies only when the catalog does not know the error itself, and is
    ignored if the registry never declared it.
    """
    catalog = registry.catalog
    kind = catalog.kind_of(error)
    if kind is None and kind_hint is not None and kind_hint in catalog:
        kind = ErrorKindId(kind_hint)

    if kind is not None:
        lineage = catalog.lineage(kind)
        handler = registry.handler_for(kind)
        if handler is not None:
            return Resolution(ResolutionStep.EXACT, kind, handler)
        for ancestor in lineage[1:]:
            handler = registry.handler_for(ancestor)
            if handler is not None:
                return Resolution(ResolutionStep.ANCESTOR, ancestor, handler)

    status = _respondable_status(catalog, kind, error)
    if status is not None:
        return Resolution(ResolutionStep.RESPONDABLE, kind, status=status)

    if registry.generic is not None:
        return Resolution(ResolutionStep.GENERIC, kind, registry.generic)
    return Resolution(ResolutionStep.BUILTIN, kind, status=INTERNAL_ERROR_STATUS)


def _respondable_status(
    catalog: ErrorKindCatalog, kind: ErrorKindId | None, error: BaseException,
) -> int | None:
    """Status from the error's own http_error_code(), else from its kind descriptors."""
    if isinstance(error, HttpRespondable):
        try:
            code = int(error.http_error_code())
        except Exception:
            code = None
        if code is not None and 100 <= code < 600:
            return code
    if kind is not None:
        return catalog.declared_status(kind)
    return None
