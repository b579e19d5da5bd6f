"""Relevance scorers: the secondary signal used to rerank search candidates."""
import asyncio
import math
import re
from functools import lru_cache
from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from langchain_core.language_models import BaseChatModel
from sentence_transformers import CrossEncoder

from ragquery.config import RerankerProvider, get_settings
from ragquery.exceptions import LLMError
from ragquery.logging_config import get_logger
from ragquery.observability import Phase, get_llm_callback_handler
from ragquery.providers.llm_factory import get_llm
from ragquery.retrieval.prompts import get_relevance_prompt

log = get_logger(__name__)

DEFAULT_CROSS_ENCODER = "cross-encoder/ms-marco-MiniLM-L-6-v2"

_SCORE_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


@runtime_checkable
class RelevanceScorer(Protocol):
    """Scores passages against a query; one score in [0, 1] per passage, same order."""

    async def score(self, query: str, documents: Sequence[str]) -> List[float]:
        ...


@lru_cache
def get_cross_encoder(model_name: str = DEFAULT_CROSS_ENCODER) -> CrossEncoder:
    """Load a CrossEncoder once per model name."""
    log.info("reranker_loading", model=model_name)
    return CrossEncoder(model_name)


def _logistic(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


class CrossEncoderRelevanceScorer:
    """
    Scores (query, passage) pairs with a sentence-transformers CrossEncoder.

    Raw logits are squashed into [0, 1] so they can be weighted against
    cosine similarity.
    """

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or DEFAULT_CROSS_ENCODER

    async def score(self, query: str, documents: Sequence[str]) -> List[float]:
        if not documents:
            return []

        model = get_cross_encoder(self.model_name)
        pairs = [[query, document] for document in documents]
        # predict is CPU-bound
        logits = await asyncio.to_thread(model.predict, pairs)
        return [_logistic(float(logit)) for logit in logits]


def _parse_llm_content(content: Any) -> str:
    """Flatten provider-specific content blocks (e.g. Gemini lists) to text."""
    if isinstance(content, list):
        return " ".join(
            block["text"] for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return str(content)


class LLMRelevanceScorer:
    """Asks a chat model to rate each passage's relevance between 0 and 1."""

    def __init__(self, llm: Optional[BaseChatModel] = None):
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        return self._llm if self._llm is not None else get_llm()

    async def score(self, query: str, documents: Sequence[str]) -> List[float]:
        if not documents:
            return []

        llm = self.llm
        prompt = get_relevance_prompt()
        callbacks = [get_llm_callback_handler(phase=Phase.RERANK)]
        scores = await asyncio.gather(
            *(self._judge(llm, prompt, query, document, callbacks) for document in documents)
        )
        return list(scores)

    async def _judge(self, llm, prompt, query: str, passage: str, callbacks) -> float:
        messages = prompt.format_messages(query=query, passage=passage)
        try:
            ai_message = await llm.ainvoke(messages, config={"callbacks": callbacks})
        except Exception as e:
            log.error("relevance_judge_failed", error=str(e))
            raise LLMError(f"Relevance judgement failed: {e}") from e

        content = _parse_llm_content(ai_message.content)
        match = _SCORE_PATTERN.search(content)
        if match is None:
            log.error("relevance_judge_unparseable", content=content[:200])
            raise LLMError(f"Could not parse a relevance score from: {content!r}")
        return min(1.0, max(0.0, float(match.group())))


def get_relevance_scorer() -> RelevanceScorer:
    """Build the relevance scorer selected in settings."""
    settings = get_settings().reranker
    if settings.provider == RerankerProvider.LLM:
        return LLMRelevanceScorer()
    return CrossEncoderRelevanceScorer(settings.model)
