from .registry import ToolRegistry, build_default_registry
from .retrieval import RETRIEVAL_TOOL_NAME, KnowledgeCollection, Retriever, build_retrieval_tool
from .web_search import web_search

__all__ = [
    "RETRIEVAL_TOOL_NAME",
    "KnowledgeCollection",
    "Retriever",
    "ToolRegistry",
    "build_default_registry",
    "build_retrieval_tool",
    "web_search",
]
