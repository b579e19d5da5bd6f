"""Human-readable descriptions advertised with the vector query tool."""

QUERY_TEXT_DESCRIPTION = "The text query to search for in the vector database"

TOP_K_DESCRIPTION = (
    "Controls how many matching results to return. Higher values retrieve more context "
    "at the cost of precision. Values between 3 and 10 suit most questions; use more "
    "for broad questions and fewer for specific lookups."
)

FILTER_DESCRIPTION = """JSON-formatted metadata filter narrowing the search.
Provide an object mapping metadata fields to constraints, for example:
- {"category": "bio"} matches documents whose category is "bio"
- {"category": ["bio", "chem"]} matches any of the listed values
- {"status": {"$ne": "draft"}} excludes a value ($eq, $ne, $in, $nin are supported)
Pass "{}" to search without filtering. Text that is not valid JSON is forwarded to
the vector store unchanged."""


def default_vector_query_description() -> str:
    """Description used when the tool is built without an explicit one."""
    return (
        "Access the knowledge base to find information needed to answer user questions. "
        "Searches a vector index for passages semantically similar to queryText and returns "
        "the metadata of the best matches in ranked order under relevantContext. "
        "Adjust topK to trade breadth of context for precision."
    )
