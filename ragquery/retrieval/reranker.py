"""Second-stage reranking of vector search candidates."""
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator

from ragquery.config import get_settings
from ragquery.exceptions import RerankError
from ragquery.logging_config import get_logger
from ragquery.observability import Phase, track
from ragquery.retrieval.relevance import RelevanceScorer, get_relevance_scorer
from ragquery.schemas.retrieval import QueryAnalysis, QueryResult, RerankResult, ScoringDetails

log = get_logger(__name__)

DOMINANT_FEATURE_COUNT = 5


class RerankWeights(BaseModel):
    """Mix of the semantic, vector and position signals. Must add up to 1."""
    model_config = ConfigDict(frozen=True)

    semantic: float = Field(default=0.4, ge=0)
    vector: float = Field(default=0.4, ge=0)
    position: float = Field(default=0.2, ge=0)

    @model_validator(mode="after")
    def validate_total(self):
        total = self.semantic + self.vector + self.position
        if abs(total - 1) > 1e-6:
            raise ValueError(f"Weights must add up to 1. Got {total}")
        return self


class RerankOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    weights: RerankWeights = Field(default_factory=RerankWeights)
    top_k: Optional[PositiveInt] = Field(default=None, description="None keeps every candidate")
    query_embedding: Optional[List[float]] = None


@dataclass(frozen=True)
class RerankConfig:
    """A relevance scorer plus the options it is applied with."""

    model: RelevanceScorer
    options: Optional[RerankOptions] = None


def analyze_query_embedding(embedding: Sequence[float]) -> QueryAnalysis:
    """Magnitude of the query vector and the indices of its strongest features."""
    magnitude = math.sqrt(sum(value * value for value in embedding))
    ranked = sorted(range(len(embedding)), key=lambda i: abs(embedding[i]), reverse=True)
    return QueryAnalysis(magnitude=magnitude, dominant_features=ranked[:DOMINANT_FEATURE_COUNT])


def adjust_score(score: float, analysis: QueryAnalysis) -> float:
    """Dampen scores for low-magnitude (weakly specified) queries."""
    if analysis.magnitude <= 0:
        return score
    magnitude_adjustment = min(1.0, analysis.magnitude / 10)
    feature_strength_adjustment = 0.95
    return score * magnitude_adjustment * feature_strength_adjustment


def position_score(position: int, total: int) -> float:
    return 1 - position / total


@track(name="rerank", phase=Phase.RERANK)
async def rerank(
    results: Sequence[QueryResult],
    query: str,
    model: RelevanceScorer,
    options: Optional[RerankOptions] = None,
) -> List[RerankResult]:
    """
    Re-score candidates and return them by descending composite score.

    The composite mixes the scorer's relevance for ``metadata["text"]``, the
    store's similarity and the candidate's original rank. Candidates without
    text get a semantic score of 0. Equal scores keep their original order.

    Args:
        results: Candidates in store order
        query: The query text the candidates were retrieved for
        model: Relevance scorer
        options: Weights, optional truncation and optional query embedding

    Returns:
        At most ``options.top_k`` reranked results

    Raises:
        RerankError: If the scorer fails; unranked results are never returned instead
    """
    options = options or RerankOptions()
    if not results:
        return []

    texts = {}
    for index, result in enumerate(results):
        text = (result.metadata or {}).get("text")
        if text:
            texts[index] = str(text)

    try:
        scores = await model.score(query, list(texts.values())) if texts else []
    except Exception as e:
        log.error("rerank_scoring_failed", candidates=len(results), error=str(e))
        raise RerankError(f"Relevance scoring failed: {e}") from e

    if len(scores) != len(texts):
        raise RerankError(f"Relevance scorer returned {len(scores)} scores for {len(texts)} passages")

    semantic_scores = dict(zip(texts.keys(), scores))
    weights = options.weights
    analysis = analyze_query_embedding(options.query_embedding) if options.query_embedding else None

    total = len(results)
    reranked = []
    for index, result in enumerate(results):
        details = ScoringDetails(
            semantic=float(semantic_scores.get(index, 0.0)),
            vector=result.score,
            position=position_score(index, total),
            query_analysis=analysis,
        )
        score = (
            weights.semantic * details.semantic
            + weights.vector * details.vector
            + weights.position * details.position
        )
        if analysis is not None:
            score = adjust_score(score, analysis)
        reranked.append(RerankResult(result=result, score=score, details=details))

    # sorted() is stable, so ties keep store order
    reranked = sorted(reranked, key=lambda r: r.score, reverse=True)
    if options.top_k is not None:
        reranked = reranked[:options.top_k]

    log.info("reranking_completed", input_count=total, output_count=len(reranked), top_k=options.top_k)
    return reranked


def get_rerank_config() -> Optional[RerankConfig]:
    """Reranker configured in settings, or None when reranking is disabled."""
    settings = get_settings().reranker
    if not settings.enabled:
        return None

    return RerankConfig(
        model=get_relevance_scorer(),
        options=RerankOptions(
            top_k=settings.top_k,
            weights=RerankWeights(
                semantic=settings.semantic_weight,
                vector=settings.vector_weight,
                position=settings.position_weight,
            ),
        ),
    )
