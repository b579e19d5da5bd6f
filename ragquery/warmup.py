"""
Model warmup utilities for preloading ML models at startup.
Used by the MCP server to avoid cold-start latency on the first tool call.
"""
from ragquery.config import RerankerProvider, get_settings
from ragquery.logging_config import get_logger

log = get_logger(__name__)


def warmup_models() -> None:
    """Preload the query embedder and, when reranking with it, the cross-encoder."""
    log.info("warmup_started")

    from ragquery.providers.embedder import get_embedder
    log.info("warmup_embedder_loading")
    get_embedder()
    log.info("warmup_embedder_ready")

    reranker = get_settings().reranker
    if reranker.enabled and reranker.provider == RerankerProvider.CROSS_ENCODER:
        from ragquery.retrieval.relevance import get_cross_encoder
        log.info("warmup_reranker_loading", model=reranker.model)
        get_cross_encoder(reranker.model)
        log.info("warmup_reranker_ready")

    log.info("warmup_completed")
