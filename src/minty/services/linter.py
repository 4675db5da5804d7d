"""Lint service tying the conversation, parser and mapper to published diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from ..ai.client import AIClient
from ..ai.conversation import conduct_conversation
from ..ai.errors import ClientNotConfiguredError, ErrorCode, LintError
from ..ai.orchestration.pipeline.execute import ModelClient
from ..ai.orchestration.runner import ConversationResult
from ..ai.orchestration.types import ConversationConfig
from ..ai.prompts import annotate_lines
from ..ai.tools.read_file import FileResolver, LocalFileResolver
from ..diagnostics.mapper import LinePolicy, map_findings
from ..diagnostics.models import Finding, LocatedDiagnostic
from ..diagnostics.parser import extract_final_answer, parse_findings
from ..editor.document_model import TextDocument
from .diagnostic_collection import DiagnosticCollection
from .settings import Settings

__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "LintResult",
    "LintService",
    "get_lint_diagnostics",
]

LOGGER = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Error occurred while linting the file."

Notifier = Callable[[str], None]
ClientFactory = Callable[[Settings], ModelClient]


@dataclass(slots=True, frozen=True)
class LintResult:
    """Outcome of one lint invocation.

    ``applied`` is false when the invocation failed or was superseded by a
    newer invocation or an edit of the document; in both cases the published
    diagnostics were left untouched.
    """

    uri: str
    diagnostics: tuple[LocatedDiagnostic, ...] = ()
    applied: bool = False
    stale: bool = False
    error: LintError | None = None
    model_calls: int = 0
    tool_calls: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


async def get_lint_diagnostics(
    client: ModelClient,
    document: TextDocument,
    *,
    resolver: FileResolver | None = None,
    config: ConversationConfig | None = None,
    line_policy: LinePolicy | str = LinePolicy.SKIP,
) -> list[LocatedDiagnostic]:
    """Run the full lint pipeline for ``document`` and return its diagnostics.

    Findings are mapped against the document as it is once the model has
    answered.

    Raises:
        LintError: Any fatal pipeline error (transport, protocol, malformed
            answer, loop cap, or out-of-range line under the abort policy).
    """

    findings, _ = await _request_findings(client, document, resolver=resolver, config=config)
    return map_findings(findings, document, line_policy=line_policy)


async def _request_findings(
    client: ModelClient,
    document: TextDocument,
    *,
    resolver: FileResolver | None,
    config: ConversationConfig | None,
) -> tuple[list[Finding], ConversationResult]:
    result = await conduct_conversation(
        client,
        document.file_name,
        annotate_lines(document.lines),
        resolver=resolver,
        config=config,
    )
    findings = parse_findings(extract_final_answer(result.transcript))
    LOGGER.debug("Lint of %s produced %d finding(s)", document.file_name, len(findings))
    return findings, result


def _default_client_factory(settings: Settings) -> ModelClient:
    return AIClient(settings.to_client_settings())


class LintService:
    """Lints documents and publishes their diagnostics with last-write-wins semantics."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: ModelClient | None = None,
        client_factory: ClientFactory | None = None,
        collection: DiagnosticCollection | None = None,
        resolver: FileResolver | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._client_factory = client_factory or _default_client_factory
        self._collection = collection or DiagnosticCollection()
        self._resolver = resolver or LocalFileResolver()
        self._notifier = notifier
        self._generations: Dict[str, int] = {}
        if client is None and not settings.has_api_key:
            LOGGER.warning("OpenAI API key is not set. Please set it using `minty set-api-key`.")

    @property
    def collection(self) -> DiagnosticCollection:
        return self._collection

    @property
    def settings(self) -> Settings:
        return self._settings

    def _ensure_client(self) -> ModelClient:
        if self._client is None:
            if not self._settings.has_api_key:
                raise ClientNotConfiguredError()
            self._client = self._client_factory(self._settings)
        return self._client

    def _next_generation(self, uri: str) -> int:
        generation = self._generations.get(uri, 0) + 1
        self._generations[uri] = generation
        return generation

    def is_current(self, uri: str, generation: int) -> bool:
        return self._generations.get(uri) == generation

    async def lint_document(self, document: TextDocument) -> LintResult:
        """Lint ``document`` and publish its diagnostics if the run is still current.

        A run is superseded when a newer run for the same document started or
        the document was edited while the model was answering; its findings
        are then discarded. Failures never raise: they are logged with
        traceback, reported through the notifier with a generic message, and
        leave the collection as it was.
        """

        uri = document.uri
        generation = self._next_generation(uri)
        version = document.version
        try:
            client = self._ensure_client()
            findings, conversation = await _request_findings(
                client,
                document,
                resolver=self._resolver,
                config=self._settings.to_conversation_config(),
            )
            counts = {"model_calls": conversation.model_calls, "tool_calls": conversation.tool_calls}
            if not self.is_current(uri, generation) or document.version != version:
                LOGGER.debug("Discarding superseded lint result for %s (version %d)", uri, version)
                return LintResult(uri=uri, stale=True, **counts)
            diagnostics = map_findings(findings, document, line_policy=self._settings.line_policy)
        except LintError as exc:
            LOGGER.exception("Linting %s failed: %s", uri, exc)
            self._notify_failure()
            return LintResult(uri=uri, error=exc, stale=not self.is_current(uri, generation))
        except Exception as exc:
            LOGGER.exception("Linting %s failed unexpectedly", uri)
            self._notify_failure()
            error = LintError(
                error_code=ErrorCode.INTERNAL_ERROR,
                message=str(exc) or type(exc).__name__,
                details={"type": type(exc).__name__},
            )
            return LintResult(uri=uri, error=error, stale=not self.is_current(uri, generation))

        self._collection.set(uri, diagnostics)
        return LintResult(uri=uri, diagnostics=tuple(diagnostics), applied=True, **counts)

    def forget(self, uri: str) -> None:
        """Drop published diagnostics for ``uri`` and invalidate in-flight runs."""

        self._next_generation(uri)
        self._collection.delete(uri)

    async def aclose(self) -> None:
        client = self._client
        close = getattr(client, "aclose", None)
        if close is not None:
            await close()

    def _notify_failure(self) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(GENERIC_FAILURE_MESSAGE)
        except Exception:  # pragma: no cover - notifier bugs must not mask the lint failure
            LOGGER.debug("Lint failure notifier raised exception", exc_info=True)
