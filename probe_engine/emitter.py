from __future__ import annotations

import json
import sys
from typing import Iterable, List, Literal, Optional, TextIO

from probe_schemas.directive_ir import Directive

OutputProtocol = Literal["directive", "cargo"]
PROTOCOLS = ("directive", "cargo")


def format_instruction(protocol: OutputProtocol, instruction: str, arg: str) -> str:
    if not instruction or not arg:
        raise ValueError("instruction and argument must be non-empty")
    if protocol == "cargo":
        return f"cargo:{instruction}={arg}"
    return f"{instruction}: {arg}"


def format_directive(protocol: OutputProtocol, directive: Directive) -> str:
    # json quoting matches the compiler's own string literal form for identifiers
    value = json.dumps(directive.value)
    if protocol == "cargo":
        return format_instruction(protocol, "rustc-cfg", f"rust_{directive.key}={value}")
    return format_instruction(protocol, "directive", f"{directive.key}={value}")


class Emitter:
    """Writes directives to a sink, all lines at once or none."""

    def __init__(
        self,
        sink: Optional[TextIO] = None,
        protocol: OutputProtocol = "directive",
    ) -> None:
        if protocol not in PROTOCOLS:
            raise ValueError(f"unknown protocol: {protocol}")
        self._sink = sink
        self.protocol: OutputProtocol = protocol

    @property
    def sink(self) -> TextIO:
        return self._sink if self._sink is not None else sys.stdout

    def render(
        self,
        directives: Iterable[Directive],
        warnings: Iterable[str] = (),
        rerun_if_changed: Iterable[str] = (),
    ) -> List[str]:
        lines = [
            format_instruction(self.protocol, "rerun-if-changed", str(path))
            for path in rerun_if_changed
        ]
        lines.extend(format_directive(self.protocol, directive) for directive in directives)
        lines.extend(format_instruction(self.protocol, "warning", msg) for msg in warnings)
        return lines

    def emit(
        self,
        directives: Iterable[Directive],
        warnings: Iterable[str] = (),
        rerun_if_changed: Iterable[str] = (),
    ) -> List[str]:
        """Write every line in one go.

        rerun-if-changed lines for the calling build script files come first.
        """
        lines = self.render(directives, warnings, rerun_if_changed)
        if lines:
            sink = self.sink
            sink.write("".join(f"{line}\n" for line in lines))
            sink.flush()
        return lines

