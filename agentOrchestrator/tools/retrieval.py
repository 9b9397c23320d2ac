"""Tenant-scoped knowledge base retrieval tool."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Protocol

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel

LOGGER = logging.getLogger(__name__)

RETRIEVAL_TOOL_NAME = "rag_retrieval"


class KnowledgeCollection(BaseModel):
    id: str
    name: str = ""


class Retriever(Protocol):
    """Vector search backend. Implemented outside this package."""

    async def list_collections(self, tenant_id: str) -> List[KnowledgeCollection]:
        ...

    async def search(
        self, collection_id: str, tenant_id: str, query: str, top_k: int
    ) -> List[Dict[str, Any]]:
        ...


def build_retrieval_tool(retriever: Retriever, tenant_id: str) -> BaseTool:
    """Create a ``rag_retrieval`` tool bound to one tenant's collections.

    Results from every collection are merged, sorted by score and truncated
    to ``top_k``. A collection whose search fails is skipped.
    """

    @tool(RETRIEVAL_TOOL_NAME)
    async def rag_retrieval(query: str, top_k: int = 5) -> str:
        """Search all knowledge bases for relevant information.

        Use this when the user asks about domain-specific knowledge or internal documents.

        Args:
            query: The search query
            top_k: Number of results to return
        """
        try:
            collections = await retriever.list_collections(tenant_id)
        except Exception as e:
            LOGGER.error(f"Listing knowledge bases failed for tenant {tenant_id}: {e}")
            return json.dumps({"error": str(e), "success": False}, ensure_ascii=False)

        if not collections:
            return json.dumps(
                {"results": [], "success": True, "message": "No knowledge bases found."},
                ensure_ascii=False,
            )

        merged: List[Dict[str, Any]] = []
        for collection in collections:
            try:
                hits = await retriever.search(collection.id, tenant_id, query, top_k)
            except Exception as e:
                LOGGER.warning(f"Knowledge base '{collection.name or collection.id}' search failed, skipping: {e}")
                continue
            merged.extend({**hit, "knowledgeBaseName": collection.name} for hit in hits)

        merged.sort(key=lambda hit: hit.get("score") or 0, reverse=True)
        return json.dumps({"results": merged[:top_k], "success": True}, ensure_ascii=False, default=str)

    return rag_retrieval


__all__ = ["KnowledgeCollection", "RETRIEVAL_TOOL_NAME", "Retriever", "build_retrieval_tool"]
