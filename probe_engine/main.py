from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from probe_engine.config import load_config
from probe_engine.console import ProbeConsole
from probe_engine.emitter import PROTOCOLS
from probe_engine.engine import FeatureProbeEngine
from probe_engine.errors import FeatureProbeError
from probe_engine.registry import FeatureRegistry


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feature-probe",
        description="Probe the current rustc for compiler, language and library features.",
    )
    parser.add_argument("features", nargs="*", help="feature names to probe")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--protocol", choices=PROTOCOLS, default=None)
    parser.add_argument(
        "--rerun-if-changed",
        action="append",
        default=[],
        metavar="FILE",
        help="emit a rerun-if-changed line for FILE (repeatable)",
    )
    parser.add_argument("--list", action="store_true", help="list supported features and exit")
    parser.add_argument("--ui", action="store_true", help="report progress on stderr")
    parser.add_argument("--verbose", action="store_true")
    return parser


def _list_features(registry: FeatureRegistry) -> None:
    for name in registry.names():
        spec = registry.lookup(name)
        categories = ",".join(spec.categories) if spec else ""
        print(f"{name}\t{categories}")


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)
    registry = FeatureRegistry()
    if args.list:
        _list_features(registry)
        return
    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SystemExit(f"feature probe failed: bad config: {exc}") from exc
    if args.protocol:
        config = config.model_copy(update={"protocol": args.protocol})
    reporter = ProbeConsole(enabled=bool(args.ui), verbose=bool(args.verbose))
    try:
        engine = FeatureProbeEngine(config, registry=registry, reporter=reporter)
        engine.emit_features(args.features, rerun_if_changed=args.rerun_if_changed)
    except FeatureProbeError as exc:
        raise SystemExit(f"feature probe failed: {exc}") from exc


if __name__ == "__main__":
    main(sys.argv[1:])
