from __future__ import annotations

import hashlib
import json
from typing import Dict, Protocol

from probe_engine.errors import ProbeInvocationError
from probe_schemas.context_ir import CompilerContext, parse_version
from probe_schemas.feature_ir import ChannelCheck, CompileProbe, FeatureSpec, VersionCheck
from probe_schemas.strict_base import CheckOutcome


class Checker(Protocol):
    def check(self, source: str) -> CheckOutcome: ...


def probe_fingerprint(probe: CompileProbe, context: CompilerContext) -> str:
    payload: Dict[str, object] = {
        "snippet": probe.snippet,
        "version": context.version,
        "channel": context.channel,
        "edition": context.edition,
        "target": context.target,
    }
    blob = json.dumps(payload, sort_keys=True, ensure_ascii=True)
    return hashlib.sha1(blob.encode("utf-8")).hexdigest()


def version_in_range(probe: VersionCheck, context: CompilerContext) -> bool:
    current = context.version_tuple
    if current < parse_version(probe.min_version):
        return False
    if probe.max_version is not None and current > parse_version(probe.max_version):
        return False
    return True


class Prober:
    """Evaluates probe strategies against one resolved context.

    Compile results are cached by fingerprint for the lifetime of the
    instance, so equivalent snippets spawn the checker only once.
    """

    def __init__(self, context: CompilerContext, checker: Checker) -> None:
        self.context = context
        self.checker = checker
        self._cache: Dict[str, bool] = {}
        self.invocations = 0

    def probe(self, spec: FeatureSpec) -> bool:
        strategy = spec.probe
        if isinstance(strategy, VersionCheck):
            return version_in_range(strategy, self.context)
        if isinstance(strategy, ChannelCheck):
            return self.context.channel in strategy.channels
        if isinstance(strategy, CompileProbe):
            return self._compile(spec.name, strategy)
        raise TypeError(f"unsupported probe strategy: {type(strategy).__name__}")

    def is_cached(self, spec: FeatureSpec) -> bool:
        if not isinstance(spec.probe, CompileProbe):
            return False
        return probe_fingerprint(spec.probe, self.context) in self._cache

    def _compile(self, feature: str, probe: CompileProbe) -> bool:
        key = probe_fingerprint(probe, self.context)
        compiled = self._cache.get(key)
        if compiled is None:
            try:
                outcome = self.checker.check(probe.snippet)
            except OSError as exc:
                raise ProbeInvocationError(feature, "spawn", str(exc)) from exc
            self.invocations += 1
            compiled = outcome == "success"
            self._cache[key] = compiled
        # the cache holds whether the snippet compiled, not whether it matched
        return compiled == (probe.expected_outcome == "success")
