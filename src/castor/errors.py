"""Exception hierarchy for Castor."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class CastorError(Exception):
    """Base exception for all Castor errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CastorError):
    """Provider settings failed validation."""


class UnsupportedOperation(CastorError):
    """The selected backend has no equivalent for the requested operation.

    Callers that want to avoid exception-based branching should consult
    ``Provider.capabilities`` before calling.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        provider: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.provider = provider
        self.operation = operation


class UnsupportedContentError(CastorError):
    """Canonical input uses a content kind the backend cannot represent."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.provider = provider


class MalformedToolCallError(CastorError):
    """The backend returned a tool call whose arguments are not valid JSON."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.tool_name = tool_name


class BackendError(CastorError):
    """A backend call failed (transport, authentication, quota).

    The message is the backend's own; provider, phase and HTTP status are
    attached as attributes instead of being folded into the text.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc*, its ``__cause__``/``__context__`` chain and any grouped members.

    Exception groups (for example the one behind httpx's "All connection
    attempts failed") are descended into through ``.exceptions``.
    """
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
        members = getattr(cur, "exceptions", None)
        if isinstance(members, (list, tuple)):
            stack.extend(m for m in members if isinstance(m, BaseException))
