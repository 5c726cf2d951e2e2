from __future__ import annotations

from typing import Callable, Mapping, Optional

from pydantic import ValidationError

from probe_engine.config import ProbeConfig
from probe_engine.errors import ContextResolutionError
from probe_schemas.context_ir import CompilerContext

Detector = Callable[[], Mapping[str, Optional[str]]]


def resolve_context(detector: Detector, config: ProbeConfig) -> CompilerContext:
    """Identify the toolchain once.  Every failure here is fatal."""
    try:
        info = detector()
    except Exception as exc:
        raise ContextResolutionError(f"toolchain detection failed: {exc}") from exc
    host = info.get("host")
    target = config.target or host
    if not target:
        raise ContextResolutionError("toolchain did not report a host and no target is set")
    try:
        return CompilerContext(
            version=str(info.get("version") or ""),
            channel=info.get("channel"),
            edition=config.edition,
            target=target,
            host=host,
            commit_date=info.get("commit_date"),
        )
    except ValidationError as exc:
        raise ContextResolutionError(f"unrecognized toolchain identity: {exc}") from exc
