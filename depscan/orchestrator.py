"""Analysis orchestration across heterogeneous modules."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .analyzers import AnalyzerRegistry, default_registry
from .errors import AnalysisCancelled, AnalysisError, AnalyzerBindError
from .logging import get_logger
from .models import (
    FETCHERS,
    Import,
    Locator,
    Module,
    ModuleStatus,
    ModuleType,
    Package,
    PackageID,
    locator_safe,
)
from .progress import NullProgress, ProgressEvent, ProgressSink, progress_scope


class TarballUploader(Protocol):
    """Uploads raw module content and returns its content-derived locator."""

    def upload_tarball(self, path: str) -> Locator:
        """Upload ``path`` as an opaque archive."""


class Orchestrator:
    """Dispatches each module to its analyzer and aggregates the results.

    Per-module problems (no analyzer for the type, build checks failing, raw
    uploads failing) are logged and the module is still emitted. A failing
    ``Analyzer.analyze`` aborts the whole run with ``AnalysisError``.
    """

    def __init__(
        self,
        registry: AnalyzerRegistry | None = None,
        uploader: TarballUploader | None = None,
        progress: ProgressSink | None = None,
        *,
        concurrency: int = 1,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.registry = registry or default_registry()
        self.uploader = uploader
        self.progress = progress or NullProgress()
        self.concurrency = concurrency
        self.logger = get_logger("orchestrator")
        self._lock = threading.Lock()

    def analyze(
        self,
        modules: Sequence[Module],
        *,
        cancel: threading.Event | None = None,
    ) -> List[Module]:
        """Return one analyzed copy of every module, in input order."""
        total = len(modules)
        self.logger.debug("Analyzing %d module(s) with concurrency %d", total, self.concurrency)
        with progress_scope(self.progress):
            if self.concurrency == 1 or total <= 1:
                return self._analyze_sequential(modules, cancel)
            return self._analyze_parallel(modules, cancel)

    def analyze_module(self, module: Module, index: int = 0, total: int = 1) -> Module:
        """Analyze a single module; ``index`` is zero-based."""
        self._notify(ProgressEvent(index=index + 1, total=total, name=module.name))
        if module.is_raw:
            analyzed = self._analyze_raw(module)
        else:
            analyzed = self._analyze_with_analyzer(module)
        self._notify(ProgressEvent(index=index + 1, total=total, name=module.name, done=True))
        return analyzed

    # ------------------------------------------------------------------
    # Scheduling

    def _analyze_sequential(
        self, modules: Sequence[Module], cancel: threading.Event | None
    ) -> List[Module]:
        analyzed: List[Module] = []
        total = len(modules)
        for index, module in enumerate(modules):
            if cancel is not None and cancel.is_set():
                raise self._cancelled(index, total)
            analyzed.append(self.analyze_module(module, index, total))
        return analyzed

    def _analyze_parallel(
        self, modules: Sequence[Module], cancel: threading.Event | None
    ) -> List[Module]:
        total = len(modules)
        slots: List[Optional[Module]] = [None] * total
        stop = threading.Event()

        def _work(index: int, module: Module) -> None:
            if stop.is_set() or (cancel is not None and cancel.is_set()):
                return
            try:
                result = self.analyze_module(module, index, total)
            except Exception:
                stop.set()
                raise
            with self._lock:
                slots[index] = result

        workers = min(self.concurrency, total)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="depscan-analyze") as executor:
            futures: List[Future[None]] = [
                executor.submit(_work, index, module) for index, module in enumerate(modules)
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            error: Optional[BaseException] = None
            for future in futures:
                if future in done and future.exception() is not None:
                    error = future.exception()
                    break
            if error is not None:
                stop.set()
                for future in futures:
                    future.cancel()

        if error is not None:
            raise error

        completed = sum(1 for slot in slots if slot is not None)
        if completed != total:
            raise self._cancelled(completed, total)
        return [slot for slot in slots if slot is not None]

    # ------------------------------------------------------------------
    # Per-module paths

    def _analyze_with_analyzer(self, module: Module) -> Module:
        try:
            analyzer = self.registry.create(module)
        except AnalyzerBindError as exc:
            self.logger.warning("Could not load analyzer for module %s: %s", module.name, exc)
            return replace(module, imports=[], deps={}, status=ModuleStatus.UNANALYZED)

        try:
            built = analyzer.is_built()
        except Exception as exc:  # analyzer plugins may raise anything here
            self.logger.warning(
                "Could not determine whether module %s is built: %s", module.name, exc
            )
        else:
            if not built:
                self.logger.warning("Module %s does not appear to be built", module.name)

        try:
            result = analyzer.analyze()
        except Exception as exc:
            raise AnalysisError(
                f"Could not analyze module '{module.name}': {exc}", module=module.name
            ) from exc

        self.logger.debug(
            "Module %s: %d direct, %d transitive dependencies",
            module.name,
            len(result.direct),
            len(result.transitive),
        )
        return replace(
            module,
            imports=list(result.direct),
            deps=dict(result.transitive),
            status=ModuleStatus.ANALYZED,
        )

    def _analyze_raw(self, module: Module) -> Module:
        locator: Optional[Locator] = None
        if self.uploader is None:
            self.logger.warning(
                "Could not upload raw module %s: no upload client configured", module.name
            )
        else:
            try:
                locator = self.uploader.upload_tarball(module.build_target)
            except Exception as exc:  # uploader plugins may raise anything here
                self.logger.warning("Could not upload raw module %s: %s", module.name, exc)

        status = ModuleStatus.ANALYZED if locator is not None else ModuleStatus.UNANALYZED
        if locator is None:
            project = locator_safe(module.name or Path(module.build_target).name)
            locator = Locator(fetcher=FETCHERS[ModuleType.RAW.value], project=project)

        package_id = PackageID(
            type=ModuleType.RAW.value, name=locator.project, revision=locator.revision
        )
        return replace(
            module,
            imports=[Import(resolved=package_id, target=module.build_target)],
            deps={package_id: Package(id=package_id)},
            status=status,
            locator=locator,
        )

    # ------------------------------------------------------------------
    # Helpers

    def _notify(self, event: ProgressEvent) -> None:
        with self._lock:
            self.progress.notify(event)

    @staticmethod
    def _cancelled(completed: int, total: int) -> AnalysisCancelled:
        return AnalysisCancelled(f"Analysis cancelled after {completed} of {total} modules")


__all__ = ["Orchestrator", "TarballUploader"]
