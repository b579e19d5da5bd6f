from langchain_core.prompts import ChatPromptTemplate

SYSTEM_TEMPLATE = """You are a relevance judge for a search engine.
Rate how relevant the passage is to the query.

Rules:
1. Answer with a single number between 0 and 1 and nothing else.
2. 1 means the passage directly answers the query, 0 means it is unrelated.
3. Judge only the passage text; do not use outside knowledge.
"""

USER_TEMPLATE = """Query: {query}

Passage:
{passage}"""

def get_relevance_prompt() -> ChatPromptTemplate:
    """Returns the chat prompt template for LLM-judged relevance."""
    return ChatPromptTemplate.from_messages([
        ("system", SYSTEM_TEMPLATE),
        ("human", USER_TEMPLATE),
    ])
