"""Input/output contracts of the vector query tool."""
import json
from enum import Enum
from typing import Any, List, Type

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from ragquery.schemas.descriptions import (
    FILTER_DESCRIPTION,
    QUERY_TEXT_DESCRIPTION,
    TOP_K_DESCRIPTION,
)


class VectorQueryInput(BaseModel):
    """
    Arguments of an unfiltered vector query.

    The contract is closed: unknown fields are rejected, never ignored.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    query_text: str = Field(alias="queryText", description=QUERY_TEXT_DESCRIPTION)
    top_k: PositiveInt = Field(alias="topK", description=TOP_K_DESCRIPTION)


class FilteredVectorQueryInput(VectorQueryInput):
    """Arguments of a vector query that also carries a metadata filter."""

    filter: str = Field(description=FILTER_DESCRIPTION)

    @field_validator("filter", mode="before")
    @classmethod
    def coerce_filter(cls, v: Any) -> Any:
        # Agents sometimes send the filter as an object instead of JSON text
        if v is None or isinstance(v, str):
            return v
        return json.dumps(v)


class VectorQueryOutput(BaseModel):
    """Projected metadata of the best matches, in final ranked order."""
    model_config = ConfigDict(populate_by_name=True)

    relevant_context: List[Any] = Field(default_factory=list, alias="relevantContext")


class ContractVariant(str, Enum):
    """Input contract selected when the tool is built."""
    UNFILTERED = "unfiltered"
    FILTERED = "filtered"

    @classmethod
    def for_filtering(cls, enable_filter: bool) -> "ContractVariant":
        return cls.FILTERED if enable_filter else cls.UNFILTERED

    @property
    def input_model(self) -> Type[VectorQueryInput]:
        if self is ContractVariant.FILTERED:
            return FilteredVectorQueryInput
        return VectorQueryInput
