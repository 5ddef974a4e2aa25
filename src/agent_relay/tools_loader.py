"""Resolution of `module:symbol` references used in agent files."""

from __future__ import annotations

import importlib
from typing import Any, Type

from pydantic import BaseModel

from agent_relay.tools import FunctionTool, Tool


def import_symbol(path: str) -> Any:
    """
    Imports a symbol given "package.module:SymbolName".
    """
    if ":" not in path:
        raise ValueError(f"Expected import path 'module:Symbol', got {path!r}")
    mod, sym = path.split(":", 1)
    module = importlib.import_module(mod)
    return getattr(module, sym)


def load_tool(path: str) -> Tool:
    """A `Tool` instance is used as is; a plain callable is wrapped with no declared parameters."""
    obj = import_symbol(path)
    if isinstance(obj, Tool):
        return obj
    if callable(obj):
        return FunctionTool(obj)
    raise TypeError(f"Tool {path!r} must be a Tool instance or a callable.")


def load_tools(paths: list[str]) -> list[Tool]:
    return [load_tool(path) for path in dict.fromkeys(paths)]


def resolve_schema(path: str) -> Type[BaseModel]:
    cls = import_symbol(path)
    if not isinstance(cls, type) or not issubclass(cls, BaseModel):
        raise TypeError(f"Schema {path!r} must be a Pydantic BaseModel subclass.")
    return cls
