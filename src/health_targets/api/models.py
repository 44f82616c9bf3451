"""Pydantic models for plan API payloads."""

from pydantic import BaseModel, ConfigDict, Field


class GeneratePlanRequest(BaseModel):
    """Body of POST /plans/generate."""

    model_config = ConfigDict(populate_by_name=True)

    force_recompute: bool = Field(default=False, alias="forceRecompute")
