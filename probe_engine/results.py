from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from probe_schemas.directive_ir import Directive
from probe_schemas.feature_ir import FeatureSpec
from probe_schemas.strict_base import FeatureCategory

EnabledFeatures = Dict[str, Optional[Tuple[FeatureCategory, ...]]]


class ResultSet:
    """Accepted features as ordered, de-duplicated directives.

    Insertion order is the order features were recorded, which the engine
    keeps equal to the request order.
    """

    def __init__(self) -> None:
        self._directives: Dict[Tuple[str, str], Directive] = {}
        self._outcomes: EnabledFeatures = {}

    def record(self, spec: FeatureSpec, passed: bool) -> None:
        if spec.name in self._outcomes:
            return
        self._outcomes[spec.name] = spec.categories if passed else None
        if not passed:
            return
        for category in spec.categories:
            directive = Directive(category=category, value=spec.name)
            self._directives.setdefault((directive.key, directive.value), directive)

    def directives(self) -> List[Directive]:
        return list(self._directives.values())

    def outcomes(self) -> EnabledFeatures:
        return dict(self._outcomes)

    def any_accepted(self) -> bool:
        return bool(self._directives)

    def __len__(self) -> int:
        return len(self._directives)
