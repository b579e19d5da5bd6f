"""Pydantic schemas shared by the retrieval pipeline and the tool layer."""

from .retrieval import (
    QueryAnalysis,
    QueryResult,
    RerankResult,
    ScoringDetails,
    VectorQueryResult,
)
from .tools import (
    ContractVariant,
    FilteredVectorQueryInput,
    VectorQueryInput,
    VectorQueryOutput,
)

__all__ = [
    "QueryAnalysis",
    "QueryResult",
    "RerankResult",
    "ScoringDetails",
    "VectorQueryResult",
    "ContractVariant",
    "FilteredVectorQueryInput",
    "VectorQueryInput",
    "VectorQueryOutput",
]
