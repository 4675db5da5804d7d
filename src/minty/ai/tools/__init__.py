"""Tools the model may call while linting a document."""

from .read_file import FileResolver, LocalFileResolver, ReadFileTool
from .registry import ToolRegistry, ToolSpec, build_lint_tools

__all__ = [
    "FileResolver",
    "LocalFileResolver",
    "ReadFileTool",
    "ToolRegistry",
    "ToolSpec",
    "build_lint_tools",
]
