from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict

# Variables Cargo sets for build scripts.
_ENV_OVERRIDES = {
    "RUSTC": "rustc",
    "TARGET": "target",
    "OUT_DIR": "workspace_root",
}


class ProbeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rustc: str = "rustc"
    target: Optional[str] = None
    edition: str = "2015"
    workspace_root: Optional[str] = None
    protocol: Literal["directive", "cargo"] = "directive"
    check_log: Optional[str] = None
    stabilization_hints: bool = True

    @property
    def workspace_path(self) -> Optional[Path]:
        return Path(self.workspace_root) if self.workspace_root else None

    @property
    def check_log_path(self) -> Optional[Path]:
        return Path(self.check_log) if self.check_log else None


def _deep_merge_dicts(base: dict, overlay: dict) -> dict:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _select_profile(raw: dict) -> dict:
    if not any(key in raw for key in ("defaults", "profiles", "active_profile")):
        return raw
    defaults = raw.get("defaults") if isinstance(raw.get("defaults"), dict) else {}
    profiles = raw.get("profiles") if isinstance(raw.get("profiles"), dict) else {}
    active_profile = raw.get("active_profile")
    if isinstance(active_profile, str) and active_profile:
        profile_cfg = profiles.get(active_profile)
        if not isinstance(profile_cfg, dict):
            raise ValueError(f"unknown profile: {active_profile}")
        return _deep_merge_dicts(defaults, profile_cfg)
    return dict(defaults)


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ProbeConfig:
    """Build the config from an optional YAML file, then the environment."""
    data: dict = {}
    if path is not None:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"config must be a mapping: {path}")
        data = _select_profile(raw)
    env = os.environ if env is None else env
    for var, key in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            data[key] = value
    return ProbeConfig(**data)
