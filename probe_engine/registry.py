"""The closed catalog of recognized features.

Supporting a new feature means adding one entry to ``CATALOG``.  Keep the
entries sorted by name; a test checks it.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Optional

from probe_engine.errors import UnknownFeatureError
from probe_schemas.feature_ir import ChannelCheck, CompileProbe, FeatureSpec, VersionCheck


def _expr(expr: str) -> CompileProbe:
    return CompileProbe(snippet=f"pub fn probe() {{ let _ = {expr}; }}\n")


def _type(ty: str) -> CompileProbe:
    return CompileProbe(snippet=f"pub type Probe = {ty};\n")


def _path(path: str) -> CompileProbe:
    return CompileProbe(snippet=f"pub use {path};\n")


def _items(source: str) -> CompileProbe:
    return CompileProbe(snippet=source)


_ARBITRARY_SELF_TYPES = """\
use std::ops::Deref;
pub struct Wrap<T>(T);
impl<T> Deref for Wrap<T> {
    type Target = T;
    fn deref(&self) -> &T { &self.0 }
}
pub trait Probe {
    fn probe(self: Wrap<&Self>) {}
}
"""


CATALOG = (
    FeatureSpec(
        name="arbitrary_self_types",
        categories=("lang",),
        probe=_items(_ARBITRARY_SELF_TYPES),
    ),
    FeatureSpec(
        name="cfg_version",
        categories=("lang",),
        probe=_expr('{ #[cfg(version("1.0"))] struct X; X }'),
    ),
    FeatureSpec(
        name="destructuring_assignment",
        categories=("lang",),
        probe=_expr("{ let (_a, _b); (_a, _b) = (1, 2); }"),
    ),
    FeatureSpec(name="error_in_core", categories=("lib",), probe=_path("core::error::Error")),
    FeatureSpec(
        name="inner_deref",
        categories=("lib",),
        probe=_expr("Ok::<_, ()>(vec![1]).as_deref()"),
    ),
    FeatureSpec(name="iter_zip", categories=("lib",), probe=_path("std::iter::zip")),
    FeatureSpec(name="never_type", categories=("lang",), probe=_type("!")),
    FeatureSpec(
        name="question_mark",
        categories=("lang",),
        probe=_expr("|| -> Result<(), ()> { Err(())? }"),
    ),
    FeatureSpec(
        name="rust1",
        categories=("comp", "lang", "lib"),
        probe=VersionCheck(min_version="1.0.0"),
    ),
    FeatureSpec(name="step_trait", categories=("lib",), probe=_path("std::iter::Step")),
    FeatureSpec(
        name="unstable_features",
        categories=("comp",),
        probe=ChannelCheck(channels=("nightly", "dev")),
    ),
    FeatureSpec(
        name="unwrap_infallible",
        categories=("lib",),
        probe=_expr("Ok::<(), core::convert::Infallible>(()).into_ok()"),
    ),
)


def ordered_unique(names: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for name in names:
        seen.setdefault(str(name), None)
    return list(seen)


class FeatureRegistry:
    def __init__(self, catalog: Iterable[FeatureSpec] = CATALOG) -> None:
        table: Dict[str, FeatureSpec] = {}
        for spec in catalog:
            if spec.name in table:
                raise ValueError(f"duplicate catalog entry: {spec.name}")
            table[spec.name] = spec
        self._table = MappingProxyType(table)

    def names(self) -> List[str]:
        return sorted(self._table)

    def lookup(self, name: str) -> Optional[FeatureSpec]:
        return self._table.get(name)

    def resolve(self, names: Iterable[str]) -> List[FeatureSpec]:
        """Look up every requested name before anything is probed.

        All unrecognized names are reported together in one
        ``UnknownFeatureError``.
        """
        requested = ordered_unique(names)
        unknown = [name for name in requested if name not in self._table]
        if unknown:
            raise UnknownFeatureError(unknown)
        return [self._table[name] for name in requested]
