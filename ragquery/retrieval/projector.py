"""Reduce search results to the metadata payload returned to the caller."""
from typing import Any, List, Sequence, Union

from ragquery.schemas.retrieval import QueryResult, RerankResult


def project_results(results: Sequence[Union[QueryResult, RerankResult]]) -> List[Any]:
    """
    Extract each result's metadata, unwrapping reranked results.

    Output length always equals input length; missing metadata stays None
    so positions still line up with scores.
    """
    return [
        result.result.metadata if isinstance(result, RerankResult) else result.metadata
        for result in results
    ]
