"""Tavily Search API - web search tailored for LLM agents."""

import json
import logging

import httpx
from langchain_core.tools import tool

from agentOrchestrator.config import get_settings

LOGGER = logging.getLogger(__name__)

TAVILY_SEARCH_API = "https://api.tavily.com/search"


@tool
async def web_search(query: str, max_results: int = 5) -> str:
    """Search the web for current information.

    Use this when you need up-to-date information or facts you are not sure about.

    Args:
        query: The search query
        max_results: Maximum number of results (1-10, default 5)

    Returns: JSON with a short ``answer`` and ``results`` (title, url, content, score)
    """
    settings = get_settings().agents
    if not settings.tavily_api_key:
        return json.dumps(
            {"error": "TAVILY_API_KEY not configured", "results": []},
            ensure_ascii=False,
        )

    body = {
        "query": query,
        "max_results": max(1, min(10, max_results)),
        "search_depth": "basic",
        "include_answer": True,
    }
    headers = {
        "Authorization": f"Bearer {settings.tavily_api_key}",
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=settings.web_search_timeout) as client:
            response = await client.post(TAVILY_SEARCH_API, headers=headers, json=body)
            response.raise_for_status()
            data = response.json()
    except httpx.TimeoutException:
        LOGGER.warning(f"Web search timed out for query: {query}")
        return json.dumps(
            {"error": f"Search timed out after {settings.web_search_timeout}s", "results": []},
            ensure_ascii=False,
        )
    except httpx.HTTPStatusError as e:
        LOGGER.warning(f"Web search failed with HTTP {e.response.status_code}")
        return json.dumps(
            {"error": f"HTTP {e.response.status_code}: {e.response.text[:200]}", "results": []},
            ensure_ascii=False,
        )
    except (httpx.HTTPError, ValueError) as e:
        LOGGER.warning(f"Web search failed: {e}")
        return json.dumps({"error": f"Search failed: {e}", "results": []}, ensure_ascii=False)

    results = [
        {
            "title": item.get("title", ""),
            "url": item.get("url", ""),
            "content": item.get("content", ""),
            "score": item.get("score"),
        }
        for item in data.get("results") or []
    ]
    return json.dumps({"answer": data.get("answer") or "", "results": results}, ensure_ascii=False)


__all__ = ["web_search"]
