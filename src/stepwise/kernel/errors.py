from __future__ import annotations

import re
import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import ClassVar


class ErrorKind(str, Enum):
    ASSERTION = "assertion"
    ALREADY_STRUCTURED = "already-structured"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    # Serialisable view of a structured step error for reports and logs.
    kind: str
    type: str
    message: str
    where: str
    stack: str | None = None


class StructuredError(Exception):
    # Base of the classified error taxonomy; subclasses fix the kind.
    kind: ClassVar[ErrorKind] = ErrorKind.ALREADY_STRUCTURED

    def __init__(
        self,
        message: str,
        *,
        original: BaseException | None = None,
        source: str = "test",
        data: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._original = original
        self._source = source
        self._data = MappingProxyType(dict(data or {}))
        self._original_stack = _format_stack(original) if original is not None else None
        if original is not None:
            # Copy the original traceback so the wrapper points at the failing line.
            self.__cause__ = original
            self.__traceback__ = original.__traceback__

    @property
    def message(self) -> str:
        return self._message

    @property
    def original_error(self) -> BaseException | None:
        return self._original

    @property
    def original_stack(self) -> str | None:
        return self._original_stack

    @property
    def source(self) -> str:
        return self._source

    @property
    def data(self) -> Mapping[str, object]:
        return self._data

    def to_info(self, where: str = "") -> ErrorInfo:
        origin = self._original if self._original is not None else self
        return ErrorInfo(
            kind=self.kind.value,
            type=type(origin).__name__,
            message=self._message,
            where=where,
            stack=self._original_stack,
        )


class AssertionFailure(StructuredError):
    # An explicit check in a step body failed.
    kind = ErrorKind.ASSERTION


class AlreadyStructuredFailure(StructuredError):
    # Raised by lower layers that already describe their failure; passed through unchanged.
    kind = ErrorKind.ALREADY_STRUCTURED


class UnclassifiedFailure(StructuredError):
    # Catch-all wrapper for anything thrown without a known shape.
    kind = ErrorKind.UNCLASSIFIED


class RunFailedError(RuntimeError):
    # Raised by a run after cleanup when one of its steps failed.
    def __init__(self, step_name: str, error: StructuredError | None) -> None:
        super().__init__("test failed")
        self.step_name = step_name
        self.error = error


class DataExhaustedError(RuntimeError):
    # Raised before any step runs when the data source has no record for the iteration.
    def __init__(self) -> None:
        super().__init__("Test data exhausted, consider making it circular?")


_ASSERTION_MESSAGE = re.compile(r"^\s*assertion", re.IGNORECASE)


def classify_error(error: BaseException) -> StructuredError:
    # Total, side-effect free mapping from a raised value to exactly one structured kind.
    if isinstance(error, StructuredError):
        return error
    if _is_assertion(error):
        return AssertionFailure(str(error) or type(error).__name__, original=error, data={"_kind": "assertion"})
    return UnclassifiedFailure(str(error) or type(error).__name__, original=error, data={"_kind": "empty"})


def _is_assertion(error: BaseException) -> bool:
    if isinstance(error, AssertionError) or type(error).__name__.startswith("AssertionError"):
        return True
    return bool(_ASSERTION_MESSAGE.match(str(error)))


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))
