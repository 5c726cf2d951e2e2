import io
from typing import Dict, List, Optional

import pytest

from probe_engine.config import ProbeConfig
from probe_engine.console import ProbeConsole
from probe_engine.engine import CFG_VERSION_HINT, EngineState, FeatureProbeEngine, emit_features
from probe_engine.errors import (
    ContextResolutionError,
    ProbeInvocationError,
    UnknownFeatureError,
)
from probe_engine.registry import FeatureRegistry
from probe_schemas.feature_ir import CompileProbe, FeatureSpec, VersionCheck


class FakeChecker:
    """Compiles everything except snippets containing one of *rejects*."""

    def __init__(self, rejects: tuple = (), fail_on: Optional[str] = None) -> None:
        self.rejects = rejects
        self.fail_on = fail_on
        self.calls: List[str] = []

    def check(self, source: str) -> str:
        if self.fail_on and self.fail_on in source:
            raise PermissionError("cannot execute rustc")
        self.calls.append(source)
        if any(token in source for token in self.rejects):
            return "failure"
        return "success"


def _detector(version: str = "1.70.0", channel: str = "stable"):
    def detect() -> Dict[str, Optional[str]]:
        return {
            "version": version,
            "channel": channel,
            "host": "x86_64-unknown-linux-gnu",
            "commit_date": "2023-05-31",
        }

    return detect


def _engine(
    checker: FakeChecker,
    sink: io.StringIO,
    channel: str = "stable",
    registry: Optional[FeatureRegistry] = None,
    hints: bool = False,
) -> FeatureProbeEngine:
    return FeatureProbeEngine(
        ProbeConfig(stabilization_hints=hints),
        registry=registry,
        detector=_detector(channel=channel),
        checker=checker,
        sink=sink,
    )


def test_context_is_resolved_at_construction() -> None:
    engine = _engine(FakeChecker(), io.StringIO())
    assert engine.state == EngineState.CONTEXT_RESOLVED
    assert engine.context.version == "1.70.0"
    assert engine.context.target == "x86_64-unknown-linux-gnu"
    assert engine.context.edition == "2015"


def test_configured_target_overrides_host() -> None:
    engine = FeatureProbeEngine(
        ProbeConfig(target="wasm32-unknown-unknown", edition="2021"),
        detector=_detector(),
        checker=FakeChecker(),
        sink=io.StringIO(),
    )
    assert engine.context.target == "wasm32-unknown-unknown"
    assert engine.context.host == "x86_64-unknown-linux-gnu"
    assert engine.context.edition == "2021"


def test_unknown_name_fails_whole_request_before_probing() -> None:
    sink = io.StringIO()
    checker = FakeChecker()
    engine = _engine(checker, sink)
    with pytest.raises(UnknownFeatureError) as exc:
        engine.emit_features(["iter_zip", "bogus_name"])
    assert exc.value.names == ["bogus_name"]
    assert sink.getvalue() == ""
    assert checker.calls == []
    assert engine.state == EngineState.FAILED


def test_failed_engine_refuses_more_work() -> None:
    engine = _engine(FakeChecker(), io.StringIO())
    with pytest.raises(UnknownFeatureError):
        engine.emit_features(["bogus_name"])
    with pytest.raises(RuntimeError, match="failed"):
        engine.emit_features(["iter_zip"])


def test_emits_in_request_order() -> None:
    sink = io.StringIO()
    engine = _engine(FakeChecker(rejects=("std::iter::Step",)), sink)
    outcomes = engine.emit_features(["never_type", "step_trait", "iter_zip", "rust1"])
    assert sink.getvalue().splitlines() == [
        'directive: lang_feature="never_type"',
        'directive: lib_feature="iter_zip"',
        'directive: comp_feature="rust1"',
        'directive: lang_feature="rust1"',
        'directive: lib_feature="rust1"',
    ]
    assert outcomes == {
        "never_type": ("lang",),
        "step_trait": None,
        "iter_zip": ("lib",),
        "rust1": ("comp", "lang", "lib"),
    }
    assert engine.state == EngineState.FINALIZED


def test_output_is_identical_across_runs() -> None:
    names = ["unwrap_infallible", "question_mark", "inner_deref", "never_type", "rust1"]
    outputs = []
    for _ in range(3):
        sink = io.StringIO()
        _engine(FakeChecker(rejects=("into_ok",)), sink).emit_features(names)
        outputs.append(sink.getvalue())
    assert outputs[0] == outputs[1] == outputs[2]
    assert outputs[0].splitlines()[0] == 'directive: lang_feature="question_mark"'


def test_unstable_features_on_nightly() -> None:
    sink = io.StringIO()
    _engine(FakeChecker(), sink, channel="nightly").emit_features(["unstable_features"])
    assert sink.getvalue() == 'directive: comp_feature="unstable_features"\n'


def test_unstable_features_on_stable_is_silent() -> None:
    sink = io.StringIO()
    outcomes = _engine(FakeChecker(), sink, channel="stable").emit_features(["unstable_features"])
    assert sink.getvalue() == ""
    assert outcomes == {"unstable_features": None}


def test_unstable_features_only_when_requested() -> None:
    sink = io.StringIO()
    _engine(FakeChecker(), sink, channel="nightly").emit_features(["never_type"])
    assert "unstable_features" not in sink.getvalue()


def test_identical_snippets_spawn_one_check() -> None:
    shared = CompileProbe(snippet="pub use a::b;\n")
    registry = FeatureRegistry(
        [
            FeatureSpec(name="alpha", categories=("lib",), probe=shared),
            FeatureSpec(name="beta", categories=("lang",), probe=CompileProbe(snippet=shared.snippet)),
        ]
    )
    sink = io.StringIO()
    checker = FakeChecker()
    engine = _engine(checker, sink, registry=registry)
    engine.emit_features(["alpha", "beta"])
    assert len(checker.calls) == 1
    assert engine.prober.invocations == 1
    assert sink.getvalue().splitlines() == [
        'directive: lib_feature="alpha"',
        'directive: lang_feature="beta"',
    ]


def test_repeated_requests_reuse_results() -> None:
    checker = FakeChecker(rejects=("std::iter::zip",))
    engine = _engine(checker, io.StringIO())
    first = engine.probe_features(["iter_zip", "never_type", "iter_zip"])
    second = engine.probe_features(["never_type", "iter_zip"])
    assert first["iter_zip"] is None and second["iter_zip"] is None
    assert first["never_type"] == second["never_type"] == ("lang",)
    assert len(checker.calls) == 2


def test_probe_features_does_not_emit() -> None:
    sink = io.StringIO()
    engine = _engine(FakeChecker(), sink)
    engine.probe_features(["never_type"])
    assert sink.getvalue() == ""
    assert engine.state == EngineState.CONTEXT_RESOLVED
    engine.emit_features(["never_type"])
    assert sink.getvalue() == 'directive: lang_feature="never_type"\n'
    assert engine.state == EngineState.FINALIZED
    engine.probe_features(["iter_zip"])
    assert engine.state == EngineState.CONTEXT_RESOLVED


def test_invocation_failure_suppresses_all_output() -> None:
    sink = io.StringIO()
    engine = _engine(FakeChecker(fail_on="std::iter::Step"), sink)
    with pytest.raises(ProbeInvocationError) as exc:
        engine.emit_features(["never_type", "iter_zip", "step_trait", "rust1"])
    assert exc.value.feature == "step_trait"
    assert sink.getvalue() == ""
    assert engine.state == EngineState.FAILED


def test_version_probe_in_engine() -> None:
    registry = FeatureRegistry(
        [FeatureSpec(name="modern", categories=("lang",), probe=VersionCheck(min_version="1.50"))]
    )
    sink = io.StringIO()
    engine = FeatureProbeEngine(
        ProbeConfig(),
        registry=registry,
        detector=_detector(version="1.40.0"),
        checker=FakeChecker(),
        sink=sink,
    )
    assert engine.emit_features(["modern"]) == {"modern": None}
    assert sink.getvalue() == ""


def test_detector_failure_is_context_resolution_error() -> None:
    def broken():
        raise RuntimeError("rustc not found")

    with pytest.raises(ContextResolutionError, match="rustc not found"):
        FeatureProbeEngine(ProbeConfig(), detector=broken, checker=FakeChecker())


def test_unknown_channel_is_context_resolution_error() -> None:
    with pytest.raises(ContextResolutionError):
        FeatureProbeEngine(
            ProbeConfig(),
            detector=_detector(channel="canary"),
            checker=FakeChecker(),
        )


def test_unparsable_version_is_context_resolution_error() -> None:
    with pytest.raises(ContextResolutionError):
        FeatureProbeEngine(
            ProbeConfig(),
            detector=_detector(version="unknown"),
            checker=FakeChecker(),
        )


def test_stabilization_hint_follows_directives() -> None:
    sink = io.StringIO()
    checker = FakeChecker()
    _engine(checker, sink, hints=True).emit_features(["never_type"])
    assert sink.getvalue().splitlines() == [
        'directive: lang_feature="never_type"',
        f"warning: {CFG_VERSION_HINT}",
    ]
    assert len(checker.calls) == 2


def test_stabilization_hint_needs_cfg_version_to_compile() -> None:
    sink = io.StringIO()
    _engine(FakeChecker(rejects=("cfg(version",)), sink, hints=True).emit_features(["never_type"])
    assert sink.getvalue() == 'directive: lang_feature="never_type"\n'


def test_stabilization_hint_skipped_without_accepted_features() -> None:
    sink = io.StringIO()
    checker = FakeChecker()
    _engine(checker, sink, channel="stable", hints=True).emit_features(["unstable_features"])
    assert sink.getvalue() == ""
    assert checker.calls == []


def test_reporter_writes_to_its_stream_only() -> None:
    sink = io.StringIO()
    stream = io.StringIO()
    engine = FeatureProbeEngine(
        ProbeConfig(stabilization_hints=False),
        detector=_detector(),
        checker=FakeChecker(),
        sink=sink,
        reporter=ProbeConsole(stream=stream, verbose=True),
    )
    engine.emit_features(["never_type", "never_type"])
    report = stream.getvalue()
    assert "1.70.0" in report
    assert "never_type" in report
    assert "emitted 1 line(s)" in report
    assert sink.getvalue() == 'directive: lang_feature="never_type"\n'


def test_emit_features_helper() -> None:
    sink = io.StringIO()
    outcomes = emit_features(
        ["rust1"],
        ProbeConfig(protocol="cargo", stabilization_hints=False),
        detector=_detector(),
        checker=FakeChecker(),
        sink=sink,
    )
    assert outcomes == {"rust1": ("comp", "lang", "lib")}
    assert sink.getvalue().splitlines()[0] == 'cargo:rustc-cfg=rust_comp_feature="rust1"'


def test_engines_do_not_share_caches() -> None:
    checker = FakeChecker()
    _engine(checker, io.StringIO()).probe_features(["iter_zip"])
    _engine(checker, io.StringIO()).probe_features(["iter_zip"])
    assert len(checker.calls) == 2


def test_failed_run_drops_rerun_lines() -> None:
    sink = io.StringIO()
    engine = _engine(FakeChecker(fail_on="std::iter::zip"), sink)
    with pytest.raises(ProbeInvocationError):
        engine.emit_features(["iter_zip"], rerun_if_changed=["build.py"])
    assert sink.getvalue() == ""


def test_rerun_lines_precede_directives() -> None:
    sink = io.StringIO()
    _engine(FakeChecker(), sink).emit_features(["never_type"], rerun_if_changed=["build.py"])
    assert sink.getvalue().splitlines() == [
        "rerun-if-changed: build.py",
        'directive: lang_feature="never_type"',
    ]
