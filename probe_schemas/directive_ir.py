from __future__ import annotations

from probe_schemas.strict_base import FeatureCategory, StrictBaseModel


class Directive(StrictBaseModel):
    category: FeatureCategory
    value: str

    @property
    def key(self) -> str:
        return f"{self.category}_feature"
