from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

FeatureCategory = Literal["comp", "lang", "lib"]
Channel = Literal["stable", "beta", "nightly", "dev"]
CheckOutcome = Literal["success", "failure"]


class StrictBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
