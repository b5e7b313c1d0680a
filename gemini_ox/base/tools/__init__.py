"""Function-calling helpers."""

from .toolbox import ToolBox, ToolHandler

__all__ = ["ToolBox", "ToolHandler"]
