"""Shared base for records parsed from creative (LLM) responses"""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class LenientModel(BaseModel):
    """
    Pydantic base that validates loosely-typed creative JSON once.

    Unknown keys are kept (extra="allow") so nothing the model wrote is lost,
    and explicit nulls are dropped so field defaults apply instead.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data
