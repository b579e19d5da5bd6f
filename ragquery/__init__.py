"""Vector query tool: embed -> filtered similarity search -> optional rerank -> projection."""

__version__ = "0.1.0"
