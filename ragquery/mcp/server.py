"""
MCP server publishing the configured vector query tool.

The tool searches the store/index named in TOOL__ settings. The registered
function matches the tool's contract variant: filtered tools take a
``filter`` argument, unfiltered tools do not.
"""
import re
from typing import Annotated, Any, Dict, Optional, Union

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ragquery.config import get_settings
from ragquery.exceptions import (
    EmbeddingError,
    RerankError,
    SimilaritySearchError,
    StorageException,
    ToolInputError,
    UnsupportedFilterError,
)
from ragquery.logging_config import configure_logging, get_logger
from ragquery.observability import set_evaluation_source
from ragquery.schemas.descriptions import (
    FILTER_DESCRIPTION,
    QUERY_TEXT_DESCRIPTION,
    TOP_K_DESCRIPTION,
)
from ragquery.schemas.tools import ContractVariant
from ragquery.tools.vector_query import ToolRuntime, VectorQueryTool

log = get_logger(__name__)


def mcp_tool_name(tool_id: str) -> str:
    """MCP tool names may not contain spaces; 'VectorQuery a b Tool' -> 'VectorQuery_a_b_Tool'."""
    return re.sub(r"[^A-Za-z0-9_-]+", "_", tool_id).strip("_")


async def run_tool(tool: VectorQueryTool, runtime: ToolRuntime, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Execute the tool and translate pipeline failures into MCP tool errors."""
    set_evaluation_source("mcp")
    log.info("mcp_vector_query_called", tool_id=tool.id, top_k=arguments.get("topK"))

    try:
        output = await tool.execute(arguments, runtime)
    except ToolInputError as e:
        log.error("mcp_tool_input_error", error=str(e))
        raise ToolError(f"Invalid arguments: {e}") from e
    except UnsupportedFilterError as e:
        log.error("mcp_unsupported_filter", error=str(e))
        raise ToolError(f"Unsupported filter: {e}") from e
    except (EmbeddingError, SimilaritySearchError) as e:
        log.error("mcp_search_error", error=str(e))
        raise ToolError("Search service temporarily unavailable. Please retry.") from e
    except RerankError as e:
        log.error("mcp_rerank_error", error=str(e))
        raise ToolError("Reranking service temporarily unavailable. Please retry.") from e
    except StorageException as e:
        log.error("mcp_storage_error", error=str(e))
        raise ToolError("Database service unavailable. Please retry.") from e
    except Exception as e:
        log.exception("mcp_unexpected_error", error=str(e))
        raise ToolError("An unexpected error occurred.") from e

    result = output.model_dump(by_alias=True)
    log.info("mcp_vector_query_success", results_count=len(result["relevantContext"]))
    return result


def register_vector_query_tool(mcp: FastMCP, tool: VectorQueryTool, runtime: ToolRuntime) -> str:
    """Register ``tool`` on ``mcp`` and return the MCP tool name."""
    name = mcp_tool_name(tool.id)

    # Parameter names are the tool's wire names. Object filters are accepted
    # as-is; the input contract serializes them to filter text.
    if tool.variant is ContractVariant.FILTERED:
        async def vector_query(
            queryText: Annotated[str, Field(description=QUERY_TEXT_DESCRIPTION)],
            topK: Annotated[int, Field(description=TOP_K_DESCRIPTION)],
            filter: Annotated[Union[str, Dict[str, Any]], Field(description=FILTER_DESCRIPTION)],
        ) -> dict:
            return await run_tool(tool, runtime, {"queryText": queryText, "topK": topK, "filter": filter})
    else:
        async def vector_query(
            queryText: Annotated[str, Field(description=QUERY_TEXT_DESCRIPTION)],
            topK: Annotated[int, Field(description=TOP_K_DESCRIPTION)],
        ) -> dict:
            return await run_tool(tool, runtime, {"queryText": queryText, "topK": topK})

    mcp.tool(vector_query, name=name, description=tool.description)
    log.info("mcp_tool_registered", name=name, variant=tool.variant.value)
    return name


def create_server(
    tool: Optional[VectorQueryTool] = None,
    runtime: Optional[ToolRuntime] = None,
) -> FastMCP:
    """
    Build the MCP server.

    Without arguments the tool, store registry and models come from settings;
    tests and embedding hosts can pass their own.
    """
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_format=settings.json_logs,
        log_file=settings.log_file,
        use_stderr=True,  # MCP uses stdout for JSON protocol
    )

    if tool is None:
        from ragquery.observability import configure_observability
        from ragquery.providers.embedder import get_embedder
        from ragquery.retrieval.reranker import get_rerank_config
        from ragquery.tools.vector_query import create_vector_query_tool
        from ragquery.warmup import warmup_models

        configure_observability()
        warmup_models()
        tool = create_vector_query_tool(
            vector_store_name=settings.tool.vector_store_name,
            index_name=settings.tool.index_name,
            model=get_embedder(),
            enable_filter=settings.tool.enable_filter,
            reranker=get_rerank_config(),
            id=settings.tool.id,
            description=settings.tool.description,
        )

    if runtime is None:
        from ragquery.stores.pgvector import PgVectorStore

        runtime = ToolRuntime(
            vectors={settings.tool.vector_store_name: PgVectorStore()},
            logger=log,
        )

    mcp = FastMCP("ragquery")
    register_vector_query_tool(mcp, tool, runtime)
    return mcp
