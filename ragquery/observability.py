from enum import Enum
from typing import Optional, List, Any
import functools
import os
import contextvars
import inspect

from ragquery.logging_config import get_logger
import opik

log = get_logger(__name__)

# Who invoked the tool (e.g. 'mcp', 'script')
_source_context = contextvars.ContextVar("source_context", default="unknown")


class Phase(Enum):
    """Standardized phases for span tagging."""
    TOOL = "tool"
    SEARCH = "search"
    RERANK = "rerank"


def configure_observability():
    """Push Opik settings into the SDK environment and configure it."""
    from ragquery.config import get_settings
    settings = get_settings()

    os.environ["OPIK_PROJECT_NAME"] = settings.opik.project_name
    if settings.opik.api_key:
        os.environ["OPIK_API_KEY"] = settings.opik.api_key
    if settings.opik.workspace:
        os.environ["OPIK_WORKSPACE"] = settings.opik.workspace
    opik.configure(use_local=False)
    log.info("observability_configured", provider="opik", project=settings.opik.project_name)


def set_evaluation_source(source: str) -> None:
    """
    Set the source context for the current execution flow.
    Example: 'mcp', 'script'
    """
    _source_context.set(source)


def _tag_current_span() -> None:
    source = _source_context.get()
    if source != "unknown":
        try:
            opik.opik_context.update_current_span(tags=[f"source:{source}"])
        except Exception:
            # No active span (tracking disabled or outside a trace)
            pass


def track(name: Optional[str] = None, phase: Optional[Phase] = None, tags: Optional[List[str]] = None):
    """
    Vendor-agnostic tracking decorator.

    Args:
        name: The name of the trace/span. Defaults to function name.
        phase: High-level phase enum (mapped to phase:X tag).
        tags: Additional list of string tags.
    """
    def decorator(func):
        static_tags = tags.copy() if tags else []
        if phase:
            static_tags.append(f"phase:{phase.value}")

        @opik.track(name=name, tags=static_tags)
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            _tag_current_span()
            return await func(*args, **kwargs)

        @opik.track(name=name, tags=static_tags)
        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            _tag_current_span()
            return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper
    return decorator


def get_llm_callback_handler(phase: Optional[Phase] = None, tags: Optional[List[str]] = None) -> Any:
    """Return a LangChain callback handler that traces LLM calls."""
    from opik.integrations.langchain import OpikTracer

    final_tags = list(tags or [])
    if phase:
        final_tags.append(f"phase:{phase.value}")

    source = _source_context.get()
    if source != "unknown":
        final_tags.append(f"source:{source}")

    return OpikTracer(tags=final_tags)
