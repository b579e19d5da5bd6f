"""Retrieval pipeline: filter parsing, similarity search, reranking and projection."""

from .filter_parser import parse_filter, normalize_filter
from .query_search import embed_query, vector_query_search
from .reranker import RerankConfig, RerankOptions, RerankWeights, rerank
from .projector import project_results

__all__ = [
    "parse_filter",
    "normalize_filter",
    "embed_query",
    "vector_query_search",
    "RerankConfig",
    "RerankOptions",
    "RerankWeights",
    "rerank",
    "project_results",
]
