"""
Vector query tool: the retrieval pipeline packaged as a self-describing tool.

A tool is built once from immutable configuration and can then be executed
concurrently by a host agent runtime. Each call resolves its vector store from
the runtime registry, so a missing store yields an empty context instead of an
error, while embedding, search and rerank failures propagate to the caller.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Type

from langchain_core.embeddings import Embeddings
from pydantic import ValidationError

from ragquery.exceptions import ToolInputError
from ragquery.logging_config import get_logger, log_context
from ragquery.observability import Phase, track
from ragquery.retrieval.filter_parser import parse_filter
from ragquery.retrieval.projector import project_results
from ragquery.retrieval.query_search import vector_query_search
from ragquery.retrieval.reranker import RerankConfig, RerankOptions, rerank
from ragquery.schemas.descriptions import default_vector_query_description
from ragquery.schemas.tools import ContractVariant, VectorQueryInput, VectorQueryOutput
from ragquery.stores.base import VectorStoreRegistry

log = get_logger(__name__)


@dataclass(frozen=True)
class ToolRuntime:
    """
    Per-call context supplied by the host.

    Attributes:
        vectors: Store name -> vector store handle
        logger: Optional structlog-style logger that receives a debug record
            of the effective filter and topK for every call
    """
    vectors: VectorStoreRegistry = field(default_factory=dict)
    logger: Optional[Any] = None


class VectorQueryTool:
    """Runs filter parsing -> similarity search -> optional rerank -> projection."""

    output_schema: Type[VectorQueryOutput] = VectorQueryOutput

    def __init__(
        self,
        *,
        id: str,
        description: str,
        variant: ContractVariant,
        vector_store_name: str,
        index_name: str,
        model: Embeddings,
        reranker: Optional[RerankConfig] = None,
    ):
        self.id = id
        self.description = description
        self.variant = variant
        self.vector_store_name = vector_store_name
        self.index_name = index_name
        self.model = model
        self.reranker = reranker

    @property
    def input_schema(self) -> Type[VectorQueryInput]:
        return self.variant.input_model

    def input_json_schema(self) -> Dict[str, Any]:
        """JSON Schema of the tool arguments, using wire (camelCase) names."""
        return self.input_schema.model_json_schema(by_alias=True)

    def output_json_schema(self) -> Dict[str, Any]:
        return self.output_schema.model_json_schema(by_alias=True)

    def validate_input(self, context: Mapping[str, Any]) -> VectorQueryInput:
        """
        Check a tool call against the input contract.

        Raises:
            ToolInputError: On missing, malformed or undeclared fields
        """
        try:
            return self.input_schema.model_validate(context)
        except ValidationError as e:
            log.warning("tool_input_rejected", tool_id=self.id, errors=e.error_count())
            raise ToolInputError(f"Invalid input for tool '{self.id}': {e}") from e

    @track(name="vector_query_tool", phase=Phase.TOOL)
    async def execute(
        self,
        context: Mapping[str, Any],
        runtime: Optional[ToolRuntime] = None,
    ) -> VectorQueryOutput:
        """
        Execute one vector query.

        Args:
            context: Tool arguments (queryText, topK and, when filtering is
                enabled, filter)
            runtime: Host-supplied store registry and optional logger

        Returns:
            VectorQueryOutput with the projected metadata in ranked order

        Raises:
            ToolInputError: If the arguments violate the input contract
            EmbeddingError, SimilaritySearchError: If the search fails
            StorageException: If the store cannot reach its database
            RerankError: If reranking is configured and fails
        """
        request = self.validate_input(context)
        runtime = runtime or ToolRuntime()

        with log_context(tool_id=self.id):
            vector_store = runtime.vectors.get(self.vector_store_name)
            if vector_store is None:
                log.warning(
                    "vector_store_not_found",
                    vector_store_name=self.vector_store_name,
                    available=sorted(runtime.vectors),
                )
                return VectorQueryOutput(relevant_context=[])

            query_filter = None
            if self.variant is ContractVariant.FILTERED and request.filter:
                query_filter = parse_filter(request.filter)

            if runtime.logger is not None:
                runtime.logger.debug(
                    "vector_query_parameters",
                    query_filter=query_filter,
                    top_k=request.top_k,
                )

            search = await vector_query_search(
                index_name=self.index_name,
                vector_store=vector_store,
                query_text=request.query_text,
                model=self.model,
                top_k=request.top_k,
                query_filter=query_filter,
            )

            if self.reranker is None:
                relevant_context = project_results(search.results)
            else:
                options = self.reranker.options or RerankOptions()
                options = options.model_copy(update={"top_k": options.top_k or request.top_k})
                reranked = await rerank(search.results, request.query_text, self.reranker.model, options)
                relevant_context = project_results(reranked)

            log.info(
                "vector_query_completed",
                index_name=self.index_name,
                reranked=self.reranker is not None,
                results_count=len(relevant_context),
            )
            return VectorQueryOutput(relevant_context=relevant_context)


def create_vector_query_tool(
    vector_store_name: str,
    index_name: str,
    model: Embeddings,
    enable_filter: bool = False,
    reranker: Optional[RerankConfig] = None,
    id: Optional[str] = None,
    description: Optional[str] = None,
) -> VectorQueryTool:
    """
    Build a vector query tool.

    Args:
        vector_store_name: Key of the store in the runtime registry
        index_name: Index searched inside that store
        model: Embedding model used for queries
        enable_filter: Adds a required ``filter`` argument to the contract
        reranker: Optional second-stage reranker
        id: Tool identifier, derived from the store and index names by default
        description: Tool description, a generic retrieval description by default
    """
    tool = VectorQueryTool(
        id=id or f"VectorQuery {vector_store_name} {index_name} Tool",
        description=description or default_vector_query_description(),
        variant=ContractVariant.for_filtering(enable_filter),
        vector_store_name=vector_store_name,
        index_name=index_name,
        model=model,
        reranker=reranker,
    )
    log.info(
        "vector_query_tool_created",
        tool_id=tool.id,
        variant=tool.variant.value,
        reranker=reranker is not None,
    )
    return tool
