"""Tools exposing the retrieval pipeline to agent runtimes."""

from .vector_query import ToolRuntime, VectorQueryTool, create_vector_query_tool

__all__ = ["ToolRuntime", "VectorQueryTool", "create_vector_query_tool"]
