"""Query embedding and similarity search against a named vector index."""
import time
from typing import Any, List, Optional

from langchain_core.embeddings import Embeddings
from pydantic import ValidationError

from ragquery.exceptions import EmbeddingError, SimilaritySearchError, StorageException
from ragquery.logging_config import get_logger
from ragquery.observability import Phase, track
from ragquery.schemas.retrieval import QueryResult, VectorQueryResult
from ragquery.stores.base import VectorStore

log = get_logger(__name__)


async def embed_query(query_text: str, model: Embeddings) -> List[float]:
    """
    Convert query text to an embedding vector.

    Raises:
        EmbeddingError: If the query is empty or the model call fails
    """
    if not query_text:
        raise EmbeddingError("Cannot embed empty query")

    start_time = time.perf_counter()
    try:
        embedding = await model.aembed_query(query_text)
    except Exception as e:
        log.error("query_embedding_failed", error=str(e))
        raise EmbeddingError(f"Failed to embed query: {e}") from e

    if not embedding:
        raise EmbeddingError("Embedding model returned an empty vector")

    latency_ms = (time.perf_counter() - start_time) * 1000
    log.info("query_embedded", dimension=len(embedding), latency_ms=round(latency_ms, 2))
    return list(embedding)


@track(name="vector_query_search", phase=Phase.SEARCH)
async def vector_query_search(
    index_name: str,
    vector_store: VectorStore,
    query_text: str,
    model: Embeddings,
    top_k: int,
    query_filter: Optional[Any] = None,
    include_vectors: bool = False,
) -> VectorQueryResult:
    """
    Embed the query and run one similarity search against the store.

    Results keep the order the store returned them in. Nothing is retried.

    Args:
        index_name: Index (collection/table) inside the store
        vector_store: Resolved store handle
        query_text: Natural-language query
        model: Embedding model, must match the one used to build the index
        top_k: Maximum number of results
        query_filter: Effective metadata filter, None for an unfiltered search
        include_vectors: Ask the store to return stored vectors

    Raises:
        EmbeddingError: If embedding the query fails
        SimilaritySearchError: If the store call fails
        StorageException: If the store cannot reach its backing database
    """
    query_embedding = await embed_query(query_text, model)

    start_time = time.perf_counter()
    try:
        rows = await vector_store.query(
            index_name=index_name,
            query_vector=query_embedding,
            top_k=top_k,
            filter=query_filter,
            include_vector=include_vectors,
        )
    except (SimilaritySearchError, StorageException):
        raise
    except Exception as e:
        log.error("similarity_search_failed", index_name=index_name, error=str(e))
        raise SimilaritySearchError(f"Similarity search failed: {e}") from e

    try:
        results = [
            row if isinstance(row, QueryResult) else QueryResult.model_validate(row)
            for row in rows
        ]
    except ValidationError as e:
        log.error("similarity_search_malformed_results", index_name=index_name, error=str(e))
        raise SimilaritySearchError(f"Vector store returned malformed results: {e}") from e

    if len(results) > top_k:
        log.warning("store_returned_extra_results", returned=len(results), top_k=top_k)
        results = results[:top_k]

    latency_ms = (time.perf_counter() - start_time) * 1000
    log.info(
        "similarity_search_completed",
        index_name=index_name,
        top_k=top_k,
        filtered=query_filter is not None,
        results_returned=len(results),
        latency_ms=round(latency_ms, 2)
    )

    return VectorQueryResult(results=results, query_embedding=query_embedding)
