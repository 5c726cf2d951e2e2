from __future__ import annotations

import re
import subprocess
from typing import Dict, Optional

from probe_schemas.strict_base import Channel

_CHANNEL_SUFFIX = re.compile(r"-(nightly|beta(?:\.\d+)?|dev)\b")


def parse_channel(release: str) -> Channel:
    match = _CHANNEL_SUFFIX.search(release or "")
    if not match:
        return "stable"
    suffix = match.group(1)
    if suffix.startswith("beta"):
        return "beta"
    if suffix == "nightly":
        return "nightly"
    return "dev"


def parse_verbose_version(text: str) -> Dict[str, str]:
    """Parse the ``key: value`` lines of ``rustc -vV``."""
    fields: Dict[str, str] = {}
    for line in (text or "").splitlines():
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        fields[key.strip()] = value.strip()
    return fields


class RustcVersionDetector:
    def __init__(self, rustc: str = "rustc") -> None:
        self.rustc = rustc

    def __call__(self) -> Dict[str, Optional[str]]:
        try:
            result = subprocess.run(
                [self.rustc, "-vV"],
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise RuntimeError(f"could not run {self.rustc}: {exc}") from exc
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise RuntimeError(f"{self.rustc} -vV exited with {result.returncode}: {detail}")
        fields = parse_verbose_version(result.stdout)
        release = fields.get("release")
        if not release:
            raise RuntimeError(f"{self.rustc} -vV did not report a release")
        return {
            "version": release,
            "channel": parse_channel(release),
            "host": fields.get("host"),
            "commit_date": fields.get("commit-date"),
        }
