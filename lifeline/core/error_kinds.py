"""Error Kind Catalog — tagged-variant registry of error kinds and their ancestry.

Invariants:
    - A kind's parent must be declared before the kind itself, so the
      `extends` relation is acyclic and every lineage walk terminates
    - kind_of() matches a declared `kind` string attribute first, then the
      EXACT runtime type of the error among bound types — never the MRO
    - Catalog is immutable once constructed (MappingProxyType views)
    - The `cancelled` kind (asyncio.CancelledError, 499) is always present

Design Decisions:
    - Explicit `extends` over isinstance chains: ancestry is data that can be
      inspected, tested, and logged
"""

import asyncio
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable

from lifeline.core.domain_types import CANCELLED_STATUS, ErrorKindId
from lifeline.core.errors import (
    DuplicateErrorKindError, RegistryError, UnknownErrorKindError,
)


CANCELLED_KIND = ErrorKindId("cancelled")


@dataclass(frozen=True)
class ErrorKind:
    """Descriptor for one error variant.

    http_error_code is the descriptor-level HttpRespondable declaration:
    when set, errors of this kind (or its descendants) without an explicit
    handler respond with this status.
    """
    name: ErrorKindId
    extends: ErrorKindId | None = None
    binds: tuple[type[BaseException], ...] = ()
    http_error_code: int | None = None


def builtin_kinds() -> tuple[ErrorKind, ...]:
    return (
        ErrorKind(
            CANCELLED_KIND,
            binds=(asyncio.CancelledError,),
            http_error_code=CANCELLED_STATUS,
        ),
    )


class ErrorKindCatalog:
    """Declared kinds in declaration order, plus the exact-type binding table."""

    def __init__(self, kinds: Iterable[ErrorKind] = ()):
        declared: dict[str, ErrorKind] = {}
        by_type: dict[type[BaseException], ErrorKindId] = {}
        for kind in (*builtin_kinds(), *kinds):
            if kind.name in declared:
                raise DuplicateErrorKindError(kind.name)
            if kind.extends is not None and kind.extends not in declared:
                raise UnknownErrorKindError(kind.extends)
            declared[kind.name] = kind
            for exc_type in kind.binds:
                if exc_type in by_type:
                    raise RegistryError(
                        f"{exc_type.__name__} is already bound to "
                        f"'{by_type[exc_type]}'"
                    )
                by_type[exc_type] = kind.name
        self._kinds = MappingProxyType(declared)
        self._by_type = MappingProxyType(by_type)

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __len__(self) -> int:
        return len(self._kinds)

    @property
    def names(self) -> tuple[ErrorKindId, ...]:
        return tuple(self._kinds)

    def get(self, name: str) -> ErrorKind:
        try:
            return self._kinds[name]
        except KeyError:
            raise UnknownErrorKindError(name) from None

    def kind_of(self, error: BaseException) -> ErrorKindId | None:
        """Kind identifier for a raised error, or None if it is undeclared."""
        declared = getattr(error, "kind", None)
        if isinstance(declared, str) and declared in self._kinds:
            return ErrorKindId(declared)
        return self._by_type.get(type(error))

    def lineage(self, name: str) -> tuple[ErrorKindId, ...]:
        """The kind itself followed by its ancestors, nearest first."""
        chain: list[ErrorKindId] = []
        current: ErrorKindId | None = self.get(name).name
        while current is not None:
            chain.append(current)
            current = self._kinds[current].extends
        return tuple(chain)

    def declared_status(self, name: str) -> int | None:
        """First http_error_code declared along the lineage, if any."""
        for kind_name in self.lineage(name):
            code = self._kinds[kind_name].http_error_code
            if code is not None:
                return code
        return None
