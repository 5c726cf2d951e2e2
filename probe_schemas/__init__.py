"""Pydantic schemas for the rustc feature probe."""

from probe_schemas.strict_base import Channel, CheckOutcome, FeatureCategory, StrictBaseModel

__all__ = ["Channel", "CheckOutcome", "FeatureCategory", "StrictBaseModel"]
