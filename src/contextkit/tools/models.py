"""Tool capability models as seen by the context engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolFunction:
    """A callable sub-function a tool exposes."""

    name: str
    description: str = ""


@dataclass(frozen=True)
class ToolCapability:
    """Read-only projection of a catalog tool."""

    name: str
    description: str = ""
    functions: tuple[ToolFunction, ...] = ()
    permissions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCapability:
        """Create a capability from a manifest or catalog dictionary."""
        name = data.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("Tool definition requires a string 'name'")

        functions: list[ToolFunction] = []
        for func in data.get("functions") or []:
            if isinstance(func, str):
                functions.append(ToolFunction(name=func))
            elif isinstance(func, dict) and func.get("name"):
                functions.append(
                    ToolFunction(name=str(func["name"]), description=str(func.get("description") or ""))
                )

        return cls(
            name=name,
            description=str(data.get("description") or ""),
            functions=tuple(functions),
            permissions=tuple(str(p) for p in data.get("permissions") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "functions": [{"name": f.name, "description": f.description} for f in self.functions],
            "permissions": list(self.permissions),
        }


@dataclass(frozen=True)
class RankedTool:
    """A tool paired with its relevance score for a query."""

    tool: ToolCapability
    score: float = field(default=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {"tool": self.tool.to_dict(), "score": self.score}
