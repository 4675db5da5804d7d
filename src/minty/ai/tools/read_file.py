"""The ``read_file`` tool: lets the model pull in files next to the linted one."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

from jsonschema import Draft7Validator, ValidationError

from ...utils.file_io import read_text
from ..errors import InvalidToolArguments

__all__ = [
    "FileResolver",
    "LocalFileResolver",
    "ReadFileTool",
    "READ_FILE_PARAMETERS",
]

LOGGER = logging.getLogger(__name__)

READ_FILE_PARAMETERS: Mapping[str, Any] = {
    "type": "object",
    "properties": {
        "filePath": {
            "type": "string",
            "minLength": 1,
            "description": "The path of the file to read, relative to the current file",
        }
    },
    "required": ["filePath"],
}

_ARGUMENTS_VALIDATOR = Draft7Validator(READ_FILE_PARAMETERS)


class FileResolver(Protocol):
    """Resolves a path relative to a base document and returns its text.

    Implementations must never raise for missing or unreadable files; they
    return ``None`` instead so the model can be told the read failed.
    """

    async def read(self, relative_path: str, base_document_path: str) -> str | None:
        ...


class LocalFileResolver:
    """File resolver backed by the local filesystem."""

    def __init__(self, *, max_bytes: int | None = 1_000_000) -> None:
        self._max_bytes = max_bytes

    def resolve(self, relative_path: str, base_document_path: str) -> Path:
        """Return the path of ``relative_path`` joined to the base document's directory."""

        return Path(base_document_path).parent / relative_path

    async def read(self, relative_path: str, base_document_path: str) -> str | None:
        target = self.resolve(relative_path, base_document_path)
        return await asyncio.to_thread(self._read_sync, target)

    def _read_sync(self, target: Path) -> str | None:
        try:
            if self._max_bytes is not None and target.stat().st_size > self._max_bytes:
                LOGGER.debug("Refusing to read %s: larger than %d bytes", target, self._max_bytes)
                return None
            return read_text(target)
        except (OSError, UnicodeDecodeError, ValueError):
            return None


class ReadFileTool:
    """Tool implementation answering ``read_file`` requests for one document.

    Attributes:
        name: Tool identifier used in API calls.
        description: Description shown to the model.
        args_schema: JSON Schema for the tool parameters.
    """

    name = "read_file"
    description = "Read the contents of a file relative to the current file"
    args_schema = READ_FILE_PARAMETERS

    def __init__(self, document_path: str, resolver: FileResolver | None = None) -> None:
        self._document_path = document_path
        self._resolver = resolver or LocalFileResolver()

    @property
    def document_path(self) -> str:
        return self._document_path

    async def __call__(self, **arguments: Any) -> str:
        try:
            _ARGUMENTS_VALIDATOR.validate(arguments)
        except ValidationError as exc:
            raise InvalidToolArguments(
                message=f"read_file arguments are invalid: {exc.message}",
                details={"arguments": sorted(arguments)},
            ) from exc

        file_path: str = arguments["filePath"]
        LOGGER.info("Tool call: read_file - Requested file: %s", file_path)
        content = await self._resolver.read(file_path, self._document_path)
        if content is None:
            LOGGER.info("File not found or unreadable: %s", file_path)
            return self.format_unreadable(file_path)
        LOGGER.info("Processed tool call: read_file - File: %s", file_path)
        return self.format_content(file_path, content)

    def format_content(self, file_path: str, content: str) -> str:
        return (
            f"Current file being linted: {self._document_path}\n"
            f"Requested file: {file_path}\n"
            f"Content of {file_path}:\n"
            f"\n"
            f"{content}"
        ).strip()

    def format_unreadable(self, file_path: str) -> str:
        return (
            f"Current file being linted: {self._document_path}\n"
            f"Requested file: {file_path}\n"
            f"\n"
            f'The file "{file_path}" could not be read. It may not exist or may not be accessible.'
        )
