from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, TextIO

from probe_engine.config import ProbeConfig
from probe_engine.console import ProbeConsole
from probe_engine.context import Detector, resolve_context
from probe_engine.emitter import Emitter
from probe_engine.prober import Checker, Prober
from probe_engine.registry import FeatureRegistry
from probe_engine.results import EnabledFeatures, ResultSet
from probe_schemas.feature_ir import FeatureSpec
from rustc_tools.compile_check import RustcChecker
from rustc_tools.version_probe import RustcVersionDetector

CFG_VERSION_HINT = "Rust feature cfg_version is now stable. Consider using instead."


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONTEXT_RESOLVED = "context_resolved"
    PROBING = "probing"
    FINALIZED = "finalized"
    FAILED = "failed"


class FeatureProbeEngine:
    """Probes requested features against the current toolchain and emits directives.

    The toolchain context is resolved once, in the constructor.  Probe
    results are cached per instance and never shared between instances.
    Directives are written only after every requested feature has been
    probed; any fatal error leaves the engine in ``FAILED`` with nothing
    emitted.
    """

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        *,
        registry: Optional[FeatureRegistry] = None,
        detector: Optional[Detector] = None,
        checker: Optional[Checker] = None,
        sink: Optional[TextIO] = None,
        reporter: Optional[ProbeConsole] = None,
    ) -> None:
        self.state = EngineState.UNINITIALIZED
        self.config = config or ProbeConfig()
        self.registry = registry or FeatureRegistry()
        self.reporter = reporter or ProbeConsole(enabled=False)
        try:
            self.context = resolve_context(
                detector or RustcVersionDetector(self.config.rustc), self.config
            )
        except Exception as exc:
            self._fail(exc)
            raise
        self.state = EngineState.CONTEXT_RESOLVED
        self.reporter.context(self.context)
        if checker is None:
            checker = RustcChecker.for_context(
                self.config.rustc,
                self.context,
                explicit_target=bool(self.config.target),
                workspace_root=self.config.workspace_path,
                log_path=self.config.check_log_path,
            )
        self.prober = Prober(self.context, checker)
        self.emitter = Emitter(sink, protocol=self.config.protocol)
        self._outcomes: Dict[str, bool] = {}

    def probe_features(self, names: Iterable[str]) -> EnabledFeatures:
        """Probe without emitting.  Maps each name to its categories, or None if absent."""
        outcomes = self._run(names).outcomes()
        self.state = EngineState.CONTEXT_RESOLVED
        return outcomes

    def emit_features(
        self,
        names: Iterable[str],
        rerun_if_changed: Iterable[str] = (),
    ) -> EnabledFeatures:
        results = self._run(names)
        try:
            warnings = self._stabilization_warnings(results)
            lines = self.emitter.emit(results.directives(), warnings, rerun_if_changed)
        except Exception as exc:
            self._fail(exc)
            raise
        self.reporter.summary(lines)
        self.state = EngineState.FINALIZED
        return results.outcomes()

    def _run(self, names: Iterable[str]) -> ResultSet:
        self._require_usable()
        self.state = EngineState.PROBING
        try:
            specs = self.registry.resolve(names)
            results = ResultSet()
            for spec in specs:
                results.record(spec, self._probe_one(spec))
        except Exception as exc:
            self._fail(exc)
            raise
        return results

    def _probe_one(self, spec: FeatureSpec, report: bool = True) -> bool:
        passed = self._outcomes.get(spec.name)
        cached = passed is not None or self.prober.is_cached(spec)
        if passed is None:
            passed = self.prober.probe(spec)
            self._outcomes[spec.name] = passed
        if report:
            self.reporter.feature(spec, passed, cached)
        return passed

    def _stabilization_warnings(self, results: ResultSet) -> List[str]:
        if not self.config.stabilization_hints or not results.any_accepted():
            return []
        spec = self.registry.lookup("cfg_version")
        if spec is None:
            return []
        return [CFG_VERSION_HINT] if self._probe_one(spec, report=False) else []

    def _require_usable(self) -> None:
        if self.state == EngineState.FAILED:
            raise RuntimeError("engine failed earlier; create a new instance")

    def _fail(self, exc: BaseException) -> None:
        self.state = EngineState.FAILED
        self.reporter.failure(exc)


def emit_features(
    names: Iterable[str],
    config: Optional[ProbeConfig] = None,
    **kwargs: object,
) -> EnabledFeatures:
    """One-shot helper for build scripts."""
    return FeatureProbeEngine(config, **kwargs).emit_features(names)
