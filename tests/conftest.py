import os

# Keep unit tests from shipping spans to Opik
os.environ.setdefault("OPIK_TRACK_DISABLE", "true")

import pytest
from unittest.mock import AsyncMock, MagicMock

from ragquery.schemas.retrieval import QueryResult


class FakeVectorStore:
    """Records every query and answers with a canned list of results."""

    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.calls = []

    async def query(self, *, index_name, query_vector, top_k, filter=None, include_vector=False):
        self.calls.append({
            "index_name": index_name,
            "query_vector": query_vector,
            "top_k": top_k,
            "filter": filter,
            "include_vector": include_vector,
        })
        if self.error is not None:
            raise self.error
        return self.results[:top_k]


def make_results(scores, with_text=True):
    return [
        QueryResult(
            id=f"doc-{i}",
            score=score,
            metadata={"text": f"passage {i}", "rank": i} if with_text else {"rank": i},
        )
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def embedding_model():
    model = MagicMock()
    model.aembed_query = AsyncMock(return_value=[0.1, 0.2, 0.3])
    return model


@pytest.fixture
def five_results():
    return make_results([0.9, 0.85, 0.7, 0.6, 0.5])


@pytest.fixture
def result_factory():
    return make_results


@pytest.fixture
def store_factory():
    return FakeVectorStore
