"""Pydantic schemas for search and rerank results."""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QueryResult(BaseModel):
    """A single candidate returned by a vector store."""
    id: str
    score: float = Field(description="Similarity reported by the store (higher is closer)")
    metadata: Optional[Dict[str, Any]] = None
    vector: Optional[List[float]] = Field(default=None, description="Stored vector, only when requested")


class VectorQueryResult(BaseModel):
    """Output of a similarity search, in store order."""
    results: List[QueryResult]
    query_embedding: List[float]


class QueryAnalysis(BaseModel):
    magnitude: float
    dominant_features: List[int]


class ScoringDetails(BaseModel):
    """Components of a composite rerank score."""
    semantic: float
    vector: float
    position: float
    query_analysis: Optional[QueryAnalysis] = None


class RerankResult(BaseModel):
    """A candidate wrapped with its composite rerank score."""
    result: QueryResult
    score: float
    details: ScoringDetails
