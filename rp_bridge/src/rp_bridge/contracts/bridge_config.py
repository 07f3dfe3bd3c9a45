from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rp_bridge.contracts.nodes import ItemAttribute
from rp_bridge.contracts.reporting import LaunchMode


class LaunchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="pytest launch", min_length=1)
    mode: LaunchMode = "DEFAULT"
    description: str | None = None
    attributes: dict[str, str] = Field(default_factory=dict)

    @field_validator("attributes", mode="before")
    @classmethod
    def _coerce_attributes_dict(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        raise ValueError("attributes must be a mapping")

    def attribute_list(self) -> list[ItemAttribute]:
        return [ItemAttribute(key=key, value=value) for key, value in self.attributes.items()]


class RetryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    attempts: int = Field(default=3, ge=1)
    delay_s: float = Field(default=1.0, ge=0)


class BridgeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str = Field(min_length=1)
    project: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    enabled: bool = True

    suite_name: str = Field(default="Test Suite", min_length=1)
    # Upper bound for a racing caller waiting on another caller's item creation.
    registry_wait_s: float = Field(default=30.0, gt=0)

    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
