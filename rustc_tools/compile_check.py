"""Check-only compilation of probe snippets.

Runs ``rustc --emit=metadata`` on a one-file library crate inside a
throwaway workspace.  No code generation happens.
"""
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional

import psutil

from probe_engine.errors import TempResourceError
from probe_schemas.context_ir import CompilerContext
from probe_schemas.strict_base import CheckOutcome
from rustc_tools.workspace import ProbeWorkspace

_CRATE_NAME = "feature_probe"


class RustcChecker:
    def __init__(
        self,
        rustc: str = "rustc",
        edition: str = "2015",
        target: Optional[str] = None,
        workspace_root: Optional[Path] = None,
        log_path: Optional[Path] = None,
    ) -> None:
        self.rustc = rustc
        self.edition = edition
        self.target = target
        self.workspace_root = workspace_root
        self.log_path = log_path

    @classmethod
    def for_context(
        cls,
        rustc: str,
        context: CompilerContext,
        explicit_target: bool,
        workspace_root: Optional[Path] = None,
        log_path: Optional[Path] = None,
    ) -> "RustcChecker":
        return cls(
            rustc=rustc,
            edition=context.edition,
            target=context.target if explicit_target else None,
            workspace_root=workspace_root,
            log_path=log_path,
        )

    def command(self, source_path: Path, out_dir: Path) -> List[str]:
        cmd = [
            self.rustc,
            "--crate-name",
            _CRATE_NAME,
            "--crate-type",
            "lib",
            "--emit=metadata",
            "--out-dir",
            str(out_dir),
        ]
        # rustc defaults to 2015 and older compilers reject the flag
        if self.edition and self.edition != "2015":
            cmd.extend(["--edition", self.edition])
        if self.target:
            cmd.extend(["--target", self.target])
        cmd.append(str(source_path))
        return cmd

    def check(self, source: str) -> CheckOutcome:
        workspace = ProbeWorkspace(self.workspace_root)
        with workspace as workdir:
            source_path = workspace.write("probe.rs", source)
            cmd = self.command(source_path, workdir)
            proc = psutil.Popen(
                cmd,
                cwd=str(workdir),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
            _, stderr = proc.communicate()
            self._log(cmd, proc.returncode, stderr)
        return "success" if proc.returncode == 0 else "failure"

    def _log(self, cmd: List[str], exit_code: int, stderr: str) -> None:
        if self.log_path is None:
            return
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(f"$ {' '.join(cmd)}\n")
                handle.write(f"exit: {exit_code}\n")
                if stderr:
                    handle.write(stderr)
                handle.write("\n")
        except OSError as exc:
            raise TempResourceError("log", self.log_path, str(exc)) from exc
