from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import List, Optional, TextIO

from probe_schemas.context_ir import CompilerContext
from probe_schemas.feature_ir import FeatureSpec


@dataclass
class ProbeConsole:
    enabled: bool = True
    stream: Optional[TextIO] = None
    verbose: bool = False

    def context(self, ctx: CompilerContext) -> None:
        if not self.enabled:
            return
        self._section("toolchain")
        self._kv("version", ctx.version)
        self._kv("channel", ctx.channel)
        self._kv("edition", ctx.edition)
        self._kv("target", ctx.target)
        if self.verbose and ctx.commit_date:
            self._kv("commit-date", ctx.commit_date)

    def feature(self, spec: FeatureSpec, passed: bool, cached: bool = False) -> None:
        if not self.enabled:
            return
        status = "yes" if passed else "no"
        suffix = " (cached)" if cached and self.verbose else ""
        self._print(f"  {spec.name:<28} {status}{suffix}")

    def summary(self, lines: List[str]) -> None:
        if not self.enabled:
            return
        self._print(f"  emitted {len(lines)} line(s)")

    def failure(self, exc: BaseException) -> None:
        if not self.enabled:
            return
        self._section("failed")
        self._print(f"  {exc}")

    def _section(self, title: str) -> None:
        self._print(f"== {title}")

    def _kv(self, key: str, value: object) -> None:
        self._print(f"  {key:<12} {value}")

    def _print(self, text: str) -> None:
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(f"{text}\n")
        stream.flush()
