"""Contract between the retrieval pipeline and vector store backends."""
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from ragquery.schemas.retrieval import QueryResult


@runtime_checkable
class VectorStore(Protocol):
    """
    A similarity-searchable collection of vectors with metadata.

    Implementations return at most ``top_k`` results ordered by descending
    similarity, and must not be mutated by a query.
    """

    async def query(
        self,
        *,
        index_name: str,
        query_vector: List[float],
        top_k: int,
        filter: Optional[Any] = None,
        include_vector: bool = False,
    ) -> Sequence[Union[QueryResult, Mapping[str, Any]]]:
        ...


# Store name -> handle, supplied by the host at call time
VectorStoreRegistry = Mapping[str, VectorStore]
