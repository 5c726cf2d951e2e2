from __future__ import annotations

import re
from typing import Optional, Tuple

from pydantic import field_validator

from probe_schemas.strict_base import Channel, StrictBaseModel

_VERSION_RE = re.compile(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[-+].*)?\s*$")


def parse_version(text: str) -> Tuple[int, int, int]:
    """Parse ``"1.50"``, ``"1.50.0"`` or ``"1.76.0-nightly"`` into a tuple.

    Missing minor/patch components count as zero.  Raises ``ValueError`` on
    anything else.
    """
    match = _VERSION_RE.match(str(text or ""))
    if not match:
        raise ValueError(f"malformed version: {text!r}")
    major, minor, patch = match.groups()
    return int(major), int(minor or 0), int(patch or 0)


class CompilerContext(StrictBaseModel):
    version: str
    channel: Channel
    edition: str = "2015"
    target: str
    host: Optional[str] = None
    commit_date: Optional[str] = None

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        parse_version(value)
        return value

    @property
    def version_tuple(self) -> Tuple[int, int, int]:
        return parse_version(self.version)
