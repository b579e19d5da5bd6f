"""Vector store backed by Postgres + pgvector."""
import json
import re
import time
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text

from ragquery.config import get_settings
from ragquery.db.db_manager import DatabaseManager, get_db_manager
from ragquery.exceptions import DatabaseConnectionError, SimilaritySearchError, UnsupportedFilterError
from ragquery.logging_config import get_logger
from ragquery.schemas.retrieval import QueryResult

log = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_OPERATORS = {"$eq", "$ne", "$in", "$nin"}


def _containment(field: str, value: Any, params: Dict[str, Any]) -> str:
    name = f"f{len(params)}"
    params[name] = json.dumps({field: value})
    return f"c.metadata @> CAST(:{name} AS jsonb)"


def _any_of(field: str, values: List[Any], params: Dict[str, Any]) -> str:
    if not values:
        return "FALSE"
    return "(" + " OR ".join(_containment(field, v, params) for v in values) + ")"


def build_filter_clause(query_filter: Any) -> Tuple[str, Dict[str, Any]]:
    """
    Translate a metadata filter into SQL over the JSONB metadata column.

    Supported: {field: value}, {field: [values]} and
    {field: {"$eq" | "$ne" | "$in" | "$nin": ...}}. Conditions are ANDed.
    Values are bound as JSON parameters, never interpolated.

    Raises:
        UnsupportedFilterError: For opaque string filters, non-object filters
            and unknown operators
    """
    if isinstance(query_filter, str):
        raise UnsupportedFilterError(
            "pgvector store only accepts JSON object filters, got an unparsed string"
        )
    if not isinstance(query_filter, dict):
        raise UnsupportedFilterError(
            f"pgvector store only accepts JSON object filters, got {type(query_filter).__name__}"
        )

    params: Dict[str, Any] = {}
    clauses = []
    for field, constraint in query_filter.items():
        if not field:
            raise UnsupportedFilterError("Metadata filter keys must be non-empty")

        if isinstance(constraint, list):
            clauses.append(_any_of(field, constraint, params))
        elif isinstance(constraint, dict):
            for operator, value in constraint.items():
                if operator not in _OPERATORS:
                    raise UnsupportedFilterError(f"Unsupported metadata filter operator: {operator}")
                if operator in ("$in", "$nin") and not isinstance(value, list):
                    raise UnsupportedFilterError(f"{operator} expects a list of values")

                if operator == "$eq":
                    clauses.append(_containment(field, value, params))
                elif operator == "$ne":
                    clauses.append(f"NOT {_containment(field, value, params)}")
                elif operator == "$in":
                    clauses.append(_any_of(field, value, params))
                else:
                    clauses.append(f"NOT {_any_of(field, value, params)}")
        else:
            clauses.append(_containment(field, constraint, params))

    return " AND ".join(clauses), params


class PgVectorStore:
    """
    Similarity search over a pgvector table.

    ``index_name`` is the table name. The table needs ``chunk_id``,
    ``metadata`` (JSONB) and ``embedding`` (vector) columns. Scores are
    cosine similarities (1 - cosine distance). Query vectors must have the
    column's dimension, EMBEDDING__DIMENSION unless given explicitly.
    """

    def __init__(self, manager: Optional[DatabaseManager] = None, dimension: Optional[int] = None):
        self._manager = manager
        self._dimension = dimension

    @property
    def manager(self) -> DatabaseManager:
        return self._manager if self._manager is not None else get_db_manager()

    @property
    def dimension(self) -> int:
        return self._dimension if self._dimension is not None else get_settings().embedding.dimension

    async def query(
        self,
        *,
        index_name: str,
        query_vector: List[float],
        top_k: int,
        filter: Optional[Any] = None,
        include_vector: bool = False,
    ) -> List[QueryResult]:
        """
        Raises:
            UnsupportedFilterError: If the filter cannot be translated to SQL
            DatabaseConnectionError: If the database is unreachable
            SimilaritySearchError: For bad index names, wrong vector dimensions
                and failed queries
        """
        if not _IDENTIFIER.match(index_name):
            raise SimilaritySearchError(f"Invalid index name: {index_name!r}")
        if len(query_vector) != self.dimension:
            raise SimilaritySearchError(
                f"Dimension mismatch: got {len(query_vector)}, expected {self.dimension}"
            )

        start_time = time.perf_counter()

        params: Dict[str, Any] = {}
        where = ""
        if filter is not None:
            clause, params = build_filter_clause(filter)
            if clause:
                where = f" AND {clause}"

        params["query_embedding"] = str(query_vector)
        params["top_k"] = top_k

        vector_column = ", c.embedding::text AS vector" if include_vector else ""
        sql = f"""
            SELECT
                c.chunk_id,
                c.metadata,
                1 - (c.embedding <=> CAST(:query_embedding AS vector)) AS similarity{vector_column}
            FROM {index_name} c
            WHERE 1=1{where}
            ORDER BY c.embedding <=> CAST(:query_embedding AS vector)
            LIMIT :top_k
        """

        try:
            async with self.manager.get_session() as session:
                result = await session.execute(text(sql), params)
                rows = result.fetchall()
        except DatabaseConnectionError:
            raise
        except Exception as e:
            log.error("pgvector_query_failed", index_name=index_name, error=str(e))
            raise SimilaritySearchError(f"pgvector query failed: {e}") from e

        results = [
            QueryResult(
                id=str(row.chunk_id),
                score=float(row.similarity),
                metadata=row.metadata,
                vector=json.loads(row.vector) if include_vector else None,
            )
            for row in rows
        ]

        latency_ms = (time.perf_counter() - start_time) * 1000
        log.debug(
            "pgvector_query_completed",
            index_name=index_name,
            top_k=top_k,
            results_returned=len(results),
            latency_ms=round(latency_ms, 2)
        )
        return results
