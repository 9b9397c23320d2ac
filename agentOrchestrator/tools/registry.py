"""Tool instance registration and lookup."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from langchain_core.tools import BaseTool


class ToolRegistry:
    """Tracks the tool instances available to graphs, keyed by name."""

    def __init__(self, tools: Optional[Iterable[BaseTool]] = None) -> None:
        self._tools: Dict[str, BaseTool] = {}
        if tools:
            for tool in tools:
                self.register(tool)

    def register(self, tool: BaseTool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> BaseTool:
        if name not in self._tools:
            raise KeyError(f"Unknown tool: {name}")
        return self._tools[name]

    def get_optional(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def get_many(self, names: Iterable[str]) -> List[BaseTool]:
        """Tools for the given names, skipping unknown ones."""
        return [self._tools[name] for name in names if name in self._tools]

    def names(self) -> List[str]:
        return list(self._tools)

    def as_dict(self) -> Dict[str, BaseTool]:
        return dict(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools


def build_default_registry() -> ToolRegistry:
    """Registry with the built-in tools."""
    from .web_search import web_search

    return ToolRegistry([web_search])
