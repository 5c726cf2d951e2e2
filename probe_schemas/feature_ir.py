from __future__ import annotations

from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import Field, field_validator, model_validator

from probe_schemas.context_ir import parse_version
from probe_schemas.strict_base import Channel, CheckOutcome, FeatureCategory, StrictBaseModel


class VersionCheck(StrictBaseModel):
    kind: Literal["version"] = "version"
    min_version: str
    max_version: Optional[str] = None

    @model_validator(mode="after")
    def _validate_bounds(self) -> "VersionCheck":
        low = parse_version(self.min_version)
        if self.max_version is not None and parse_version(self.max_version) < low:
            raise ValueError(
                f"max_version {self.max_version} is below min_version {self.min_version}"
            )
        return self


class CompileProbe(StrictBaseModel):
    kind: Literal["compile"] = "compile"
    snippet: str = Field(..., min_length=1)
    expected_outcome: CheckOutcome = "success"


class ChannelCheck(StrictBaseModel):
    kind: Literal["channel"] = "channel"
    channels: Tuple[Channel, ...] = Field(..., min_length=1)


ProbeStrategy = Annotated[
    Union[VersionCheck, CompileProbe, ChannelCheck],
    Field(discriminator="kind"),
]


class FeatureSpec(StrictBaseModel):
    name: str = Field(..., pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    categories: Tuple[FeatureCategory, ...] = Field(..., min_length=1)
    probe: ProbeStrategy

    @field_validator("categories")
    @classmethod
    def _unique_categories(
        cls, value: Tuple[FeatureCategory, ...]
    ) -> Tuple[FeatureCategory, ...]:
        if len(set(value)) != len(value):
            raise ValueError(f"duplicate categories: {value}")
        return value

    @property
    def category(self) -> FeatureCategory:
        return self.categories[0]
