"""Demo script: run one vector query against the configured pgvector index."""
import asyncio
import json
import sys

from ragquery.config import get_settings
from ragquery.logging_config import configure_logging, get_logger
from ragquery.providers.embedder import get_embedder
from ragquery.retrieval.reranker import get_rerank_config
from ragquery.stores.pgvector import PgVectorStore
from ragquery.tools.vector_query import ToolRuntime, create_vector_query_tool


async def main(query: str, filter_text: str) -> None:
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_format=settings.json_logs,
        log_file=settings.log_file,
    )

    tool = create_vector_query_tool(
        vector_store_name=settings.tool.vector_store_name,
        index_name=settings.tool.index_name,
        model=get_embedder(),
        enable_filter=True,
        reranker=get_rerank_config(),
    )
    runtime = ToolRuntime(
        vectors={settings.tool.vector_store_name: PgVectorStore()},
        logger=get_logger("query_demo"),
    )

    print(f"Query: {query}")
    print(f"Filter: {filter_text or '(none)'}")
    print("-" * 60)

    output = await tool.execute({"queryText": query, "topK": 3, "filter": filter_text}, runtime)

    print(f"Results found: {len(output.relevant_context)}")
    for i, metadata in enumerate(output.relevant_context, 1):
        print(f"\n{i}. {json.dumps(metadata, indent=2, default=str)[:400]}")


if __name__ == "__main__":
    query = sys.argv[1] if len(sys.argv) > 1 else "what is context window?"
    filter_text = sys.argv[2] if len(sys.argv) > 2 else ""
    asyncio.run(main(query, filter_text))
