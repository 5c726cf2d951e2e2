from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional


class FeatureProbeError(RuntimeError):
    """Fatal condition that aborts a probe run before any directive is emitted."""

    code = "feature_probe"


class UnknownFeatureError(FeatureProbeError):
    code = "unknown_feature"

    def __init__(self, names: Iterable[str]) -> None:
        self.names: List[str] = list(names)
        listed = ", ".join(repr(name) for name in self.names)
        super().__init__(f"unrecognized feature name(s): {listed}")


class ContextResolutionError(FeatureProbeError):
    code = "context_resolution"


class TempResourceError(FeatureProbeError):
    code = "temp_resource"

    def __init__(self, kind: str, path: Optional[Path], detail: str = "") -> None:
        self.kind = kind
        self.path = path
        message = f"temporary resource {kind} failed"
        if path is not None:
            message += f" ({path})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ProbeInvocationError(FeatureProbeError):
    code = "probe_invocation"

    def __init__(self, feature: str, kind: str, detail: str = "") -> None:
        self.feature = feature
        self.kind = kind
        message = f"probe for feature {feature!r} could not run ({kind})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
