"""Exception hierarchy shared across depscan components.

Errors fall into three domains that callers must be able to tell apart:

* recoverable per module (``AnalyzerBindError``, ``AnalyzerError`` raised by
  build checks, ``UploadError`` raised by raw uploads) which the orchestrator
  logs and absorbs;
* fatal to the run (``AnalysisError`` and its subclasses) which abort the
  analysis without producing partial output;
* fatal to publication (``UploadError`` raised by the final upload) which is
  only reachable once analysis has succeeded.
"""

from __future__ import annotations

from typing import Optional


class DepscanError(RuntimeError):
    """Base class for depscan failures."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        troubleshooting: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.troubleshooting = troubleshooting


class LocatorError(DepscanError, ValueError):
    """Raised when a locator cannot be parsed or is structurally invalid."""


class AnalyzerBindError(DepscanError):
    """Raised when no analyzer can be bound to a module."""


class AnalyzerError(DepscanError):
    """Raised by analyzers when build checks or dependency discovery fail."""


class AnalysisError(DepscanError):
    """Raised when a run cannot produce a complete dependency graph."""

    def __init__(self, message: str, *, module: Optional[str] = None) -> None:
        super().__init__(message, code="E_ANALYSIS")
        self.module = module


class AnalysisCancelled(AnalysisError):
    """Raised when a run is cancelled before every module was analyzed."""


class NormalizationError(AnalysisError):
    """Raised when analyzed modules cannot be converted to source units."""


class UploadError(DepscanError):
    """Raised when the remote service rejects or cannot receive an upload."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message, code="E_UPLOAD")
        self.status = status


class MissingAPIKeyError(DepscanError):
    """Raised before analysis when publishing is requested without credentials."""


class TemplateError(DepscanError):
    """Raised when a user-supplied output template cannot be rendered."""


__all__ = [
    "AnalysisCancelled",
    "AnalysisError",
    "AnalyzerBindError",
    "AnalyzerError",
    "DepscanError",
    "LocatorError",
    "MissingAPIKeyError",
    "NormalizationError",
    "TemplateError",
    "UploadError",
]
