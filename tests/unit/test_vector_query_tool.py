"""Unit tests for the vector query tool."""
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock
from pydantic import ValidationError

from ragquery.exceptions import EmbeddingError, RerankError, SimilaritySearchError, ToolInputError
from ragquery.retrieval.reranker import RerankConfig, RerankOptions
from ragquery.schemas.descriptions import default_vector_query_description
from ragquery.schemas.tools import (
    ContractVariant,
    FilteredVectorQueryInput,
    VectorQueryInput,
    VectorQueryOutput,
)
from ragquery.tools.vector_query import ToolRuntime, create_vector_query_tool


def scorer_returning(scores):
    scorer = MagicMock()
    scorer.score = AsyncMock(return_value=scores)
    return scorer


# --- Build-time configuration ---

class TestToolConstruction:
    """Tests for create_vector_query_tool."""

    def test_default_id_and_description(self, embedding_model):
        tool = create_vector_query_tool("pgvector", "chunks", embedding_model)

        assert tool.id == "VectorQuery pgvector chunks Tool"
        assert tool.description == default_vector_query_description()

    def test_overrides(self, embedding_model):
        tool = create_vector_query_tool(
            "pgvector", "chunks", embedding_model, id="search_docs", description="Search the docs."
        )

        assert tool.id == "search_docs"
        assert tool.description == "Search the docs."

    def test_unfiltered_contract(self, embedding_model):
        tool = create_vector_query_tool("pgvector", "chunks", embedding_model)

        assert tool.variant is ContractVariant.UNFILTERED
        assert tool.input_schema is VectorQueryInput
        schema = tool.input_json_schema()
        assert set(schema["properties"]) == {"queryText", "topK"}
        assert set(schema["required"]) == {"queryText", "topK"}
        assert schema["additionalProperties"] is False

    def test_filtered_contract(self, embedding_model):
        tool = create_vector_query_tool("pgvector", "chunks", embedding_model, enable_filter=True)

        assert tool.variant is ContractVariant.FILTERED
        assert tool.input_schema is FilteredVectorQueryInput
        schema = tool.input_json_schema()
        assert set(schema["properties"]) == {"queryText", "topK", "filter"}
        assert "filter" in schema["required"]
        assert schema["additionalProperties"] is False

    def test_output_contract(self, embedding_model):
        tool = create_vector_query_tool("pgvector", "chunks", embedding_model)
        assert set(tool.output_json_schema()["properties"]) == {"relevantContext"}


# --- Input contract ---

class TestInputContract:
    """The contract is closed and checked before any pipeline work."""

    @pytest.mark.asyncio
    async def test_rejects_extra_fields(self, embedding_model, store_factory):
        store = store_factory([])
        tool = create_vector_query_tool("store", "idx", embedding_model)

        with pytest.raises(ToolInputError):
            await tool.execute(
                {"queryText": "q", "topK": 3, "filter": '{"a": 1}'},
                ToolRuntime(vectors={"store": store}),
            )

        embedding_model.aembed_query.assert_not_called()
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_rejects_missing_filter_when_filtering(self, embedding_model, store_factory):
        tool = create_vector_query_tool("store", "idx", embedding_model, enable_filter=True)

        with pytest.raises(ToolInputError):
            await tool.execute({"queryText": "q", "topK": 3}, ToolRuntime(vectors={"store": store_factory([])}))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("top_k", [0, -1, "many"])
    async def test_rejects_invalid_top_k(self, embedding_model, top_k):
        tool = create_vector_query_tool("store", "idx", embedding_model)

        with pytest.raises(ToolInputError):
            await tool.execute({"queryText": "q", "topK": top_k})

    @pytest.mark.asyncio
    async def test_rejects_missing_query(self, embedding_model):
        tool = create_vector_query_tool("store", "idx", embedding_model)

        with pytest.raises(ToolInputError):
            await tool.execute({"topK": 3})

    def test_top_k_is_coerced_from_numeric_text(self):
        request = VectorQueryInput.model_validate({"queryText": "q", "topK": "4"})
        assert request.top_k == 4

    def test_filter_object_is_coerced_to_text(self):
        request = FilteredVectorQueryInput.model_validate(
            {"queryText": "q", "topK": 1, "filter": {"category": "bio"}}
        )
        assert request.filter == '{"category": "bio"}'

    def test_snake_case_names_are_not_accepted(self):
        with pytest.raises(ValidationError):
            VectorQueryInput.model_validate({"query_text": "q", "top_k": 1})


# --- Invocation ---

@pytest.mark.asyncio
async def test_returns_top_three_in_store_order(embedding_model, store_factory, five_results):
    """topK=3 against five candidates returns the first three by store order."""
    store = store_factory(five_results)
    tool = create_vector_query_tool("store", "idx", embedding_model)

    output = await tool.execute(
        {"queryText": "what is photosynthesis", "topK": 3},
        ToolRuntime(vectors={"store": store}),
    )

    assert isinstance(output, VectorQueryOutput)
    assert output.relevant_context == [r.metadata for r in five_results[:3]]
    assert store.calls[0]["filter"] is None
    assert store.calls[0]["top_k"] == 3
    assert store.calls[0]["index_name"] == "idx"
    embedding_model.aembed_query.assert_called_once_with("what is photosynthesis")


@pytest.mark.asyncio
@pytest.mark.parametrize("top_k", [1, 2, 5, 10])
async def test_output_never_exceeds_top_k(embedding_model, store_factory, five_results, top_k):
    tool = create_vector_query_tool("store", "idx", embedding_model)

    output = await tool.execute(
        {"queryText": "q", "topK": top_k},
        ToolRuntime(vectors={"store": store_factory(five_results)}),
    )

    assert len(output.relevant_context) <= top_k


@pytest.mark.asyncio
async def test_missing_store_returns_empty_context(embedding_model, store_factory):
    """An unresolvable store is a soft failure: empty list, no exception."""
    tool = create_vector_query_tool("missing", "idx", embedding_model)

    output = await tool.execute(
        {"queryText": "q", "topK": 3},
        ToolRuntime(vectors={"other": store_factory([])}),
    )

    assert output.relevant_context == []
    assert output.model_dump(by_alias=True) == {"relevantContext": []}
    embedding_model.aembed_query.assert_not_called()


@pytest.mark.asyncio
async def test_no_runtime_returns_empty_context(embedding_model):
    tool = create_vector_query_tool("store", "idx", embedding_model)

    output = await tool.execute({"queryText": "q", "topK": 3})

    assert output.relevant_context == []


@pytest.mark.asyncio
async def test_json_filter_is_parsed(embedding_model, store_factory):
    store = store_factory([])
    tool = create_vector_query_tool("store", "idx", embedding_model, enable_filter=True)

    await tool.execute(
        {"queryText": "q", "topK": 3, "filter": '{"category":"bio"}'},
        ToolRuntime(vectors={"store": store}),
    )

    assert store.calls[0]["filter"] == {"category": "bio"}


@pytest.mark.asyncio
async def test_malformed_filter_is_forwarded_raw(embedding_model, store_factory):
    store = store_factory([])
    tool = create_vector_query_tool("store", "idx", embedding_model, enable_filter=True)

    await tool.execute(
        {"queryText": "q", "topK": 3, "filter": "not json"},
        ToolRuntime(vectors={"store": store}),
    )

    assert store.calls[0]["filter"] == "not json"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_filter", ["{}", ""])
async def test_empty_filter_equals_no_filter(embedding_model, store_factory, five_results, raw_filter):
    filtered_store = store_factory(five_results)
    plain_store = store_factory(five_results)
    filtered = create_vector_query_tool("store", "idx", embedding_model, enable_filter=True)
    plain = create_vector_query_tool("store", "idx", embedding_model)

    with_filter = await filtered.execute(
        {"queryText": "q", "topK": 4, "filter": raw_filter},
        ToolRuntime(vectors={"store": filtered_store}),
    )
    without_filter = await plain.execute(
        {"queryText": "q", "topK": 4},
        ToolRuntime(vectors={"store": plain_store}),
    )

    assert filtered_store.calls[0]["filter"] is None
    assert filtered_store.calls == plain_store.calls
    assert with_filter == without_filter


@pytest.mark.asyncio
async def test_runtime_logger_receives_effective_filter(embedding_model, store_factory):
    logger = MagicMock()
    tool = create_vector_query_tool("store", "idx", embedding_model, enable_filter=True)

    await tool.execute(
        {"queryText": "q", "topK": 2, "filter": '{"source": "a.pdf"}'},
        ToolRuntime(vectors={"store": store_factory([])}, logger=logger),
    )

    logger.debug.assert_called_once()
    assert logger.debug.call_args.kwargs == {"query_filter": {"source": "a.pdf"}, "top_k": 2}


# --- Failures propagate ---

@pytest.mark.asyncio
async def test_search_failure_propagates(embedding_model, store_factory):
    tool = create_vector_query_tool("store", "idx", embedding_model)
    store = store_factory(error=TimeoutError("store timed out"))

    with pytest.raises(SimilaritySearchError):
        await tool.execute({"queryText": "q", "topK": 3}, ToolRuntime(vectors={"store": store}))


@pytest.mark.asyncio
async def test_embedding_failure_propagates(store_factory):
    model = MagicMock()
    model.aembed_query = AsyncMock(side_effect=RuntimeError("quota exceeded"))
    tool = create_vector_query_tool("store", "idx", model)

    with pytest.raises(EmbeddingError):
        await tool.execute({"queryText": "q", "topK": 3}, ToolRuntime(vectors={"store": store_factory([])}))


# --- Reranking ---

@pytest.mark.asyncio
async def test_reranker_reorders_without_top_k_override(embedding_model, store_factory, five_results):
    """Reranker without its own topK returns the request's topK items in new order."""
    scorer = scorer_returning([0.0, 0.1, 0.2, 0.3, 1.0])
    tool = create_vector_query_tool(
        "store", "idx", embedding_model, reranker=RerankConfig(model=scorer)
    )

    output = await tool.execute(
        {"queryText": "q", "topK": 5},
        ToolRuntime(vectors={"store": store_factory(five_results)}),
    )

    assert len(output.relevant_context) == 5
    assert output.relevant_context[0] == five_results[4].metadata
    assert output.relevant_context != [r.metadata for r in five_results]
    scorer.score.assert_called_once()


@pytest.mark.asyncio
async def test_reranker_output_bounded_by_request_top_k(embedding_model, store_factory, five_results):
    scorer = scorer_returning([0.5, 0.5, 0.5])
    tool = create_vector_query_tool(
        "store", "idx", embedding_model, reranker=RerankConfig(model=scorer, options=RerankOptions())
    )

    output = await tool.execute(
        {"queryText": "q", "topK": 3},
        ToolRuntime(vectors={"store": store_factory(five_results)}),
    )

    assert len(output.relevant_context) <= 3


@pytest.mark.asyncio
async def test_reranker_top_k_override(embedding_model, store_factory, five_results):
    scorer = scorer_returning([0.1, 0.2, 0.3, 0.4, 0.5])
    tool = create_vector_query_tool(
        "store", "idx", embedding_model,
        reranker=RerankConfig(model=scorer, options=RerankOptions(top_k=2)),
    )

    output = await tool.execute(
        {"queryText": "q", "topK": 5},
        ToolRuntime(vectors={"store": store_factory(five_results)}),
    )

    assert len(output.relevant_context) == 2


@pytest.mark.asyncio
async def test_rerank_failure_is_not_masked(embedding_model, store_factory, five_results):
    scorer = MagicMock()
    scorer.score = AsyncMock(side_effect=RuntimeError("reranker down"))
    tool = create_vector_query_tool("store", "idx", embedding_model, reranker=RerankConfig(model=scorer))

    with pytest.raises(RerankError):
        await tool.execute(
            {"queryText": "q", "topK": 5},
            ToolRuntime(vectors={"store": store_factory(five_results)}),
        )


@pytest.mark.asyncio
async def test_concurrent_invocations_do_not_interfere(embedding_model, store_factory, result_factory):
    store_a = store_factory(result_factory([0.9, 0.8]))
    store_b = store_factory(result_factory([0.7]))
    tool = create_vector_query_tool("store", "idx", embedding_model)

    out_a, out_b = await asyncio.gather(
        tool.execute({"queryText": "a", "topK": 2}, ToolRuntime(vectors={"store": store_a})),
        tool.execute({"queryText": "b", "topK": 2}, ToolRuntime(vectors={"store": store_b})),
    )

    assert len(out_a.relevant_context) == 2
    assert len(out_b.relevant_context) == 1
