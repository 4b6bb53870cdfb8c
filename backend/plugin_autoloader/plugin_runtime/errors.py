from __future__ import annotations

import traceback
from typing import Optional


class AutoloadError(Exception):
    """Base class for autoloader errors."""


class LoadFailure(AutoloadError):
    """A located source file failed to execute.

    Wraps whatever the executor raised (malformed source, an exception raised
    by the plugin code itself, or the file disappearing between the existence
    check and the read). The original exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, path: str, relative_path: str, line: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.relative_path = relative_path
        self.line = line

    @classmethod
    def from_exception(cls, exc: BaseException, *, path: str, relative_path: str) -> "LoadFailure":
        message = f"Could not autoload {relative_path}: {exc}"
        return cls(message, path=path, relative_path=relative_path, line=_failure_line(exc, path))

    def to_dict(self) -> dict:
        return {
            'code': 'LOAD_FAILED',
            'message': self.message,
            'path': self.path,
            'relative_path': self.relative_path,
            'line': self.line,
        }


def _failure_line(exc: BaseException, path: str) -> Optional[int]:
    if isinstance(exc, SyntaxError) and exc.lineno is not None:
        return exc.lineno
    line = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == path:
            line = frame.lineno
    return line
