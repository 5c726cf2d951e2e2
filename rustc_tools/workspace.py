from __future__ import annotations

import shutil
import tempfile
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Optional

from probe_engine.errors import TempResourceError


class ProbeWorkspace(AbstractContextManager):
    """Temporary directory for one compile probe.

    Created on enter and removed on every exit path.  Failing to create or
    remove it is fatal.
    """

    def __init__(self, parent: Optional[Path] = None, prefix: str = "feature_probe_") -> None:
        self.parent = parent
        self.prefix = prefix
        self.path: Optional[Path] = None

    def __enter__(self) -> Path:
        try:
            if self.parent is not None:
                self.parent.mkdir(parents=True, exist_ok=True)
            self.path = Path(
                tempfile.mkdtemp(
                    prefix=self.prefix,
                    dir=str(self.parent) if self.parent is not None else None,
                )
            )
        except OSError as exc:
            raise TempResourceError("create", self.parent, str(exc)) from exc
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.path is None:
            return None
        try:
            shutil.rmtree(self.path)
        except OSError as err:
            raise TempResourceError("delete", self.path, str(err)) from err
        return None

    def write(self, name: str, text: str) -> Path:
        if self.path is None:
            raise RuntimeError("workspace is not active")
        target = self.path / name
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise TempResourceError("write", target, str(exc)) from exc
        return target
