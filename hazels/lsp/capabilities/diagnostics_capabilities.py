"""
Diagnostics for Haze documents.

Diagnostics are delivered two ways:

- Pull: the client sends textDocument/diagnostic and gets a full report
  computed from the current document text (see CapabilityManager).
- Push: whenever a document opens or an accepted change arrives, the
  document is re-validated and the result sent with
  textDocument/publishDiagnostics.

Push validation is serialized per URI. A newer edit cancels the pending
validation of that document instead of queueing behind it, and a
validation that finds the document changed after it suspended does not
publish its (stale) result.

Findings come from a pluggable ValidationRule. The capability applies the
problem cap from the document settings, the default severity and source,
and attaches related information only for clients that support it.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from itertools import islice

from lsprotocol.types import (
    Diagnostic,
    DiagnosticRelatedInformation,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentDiagnosticParams,
    Location,
    LogMessageParams,
    MessageType,
    PublishDiagnosticsParams,
)
from pygls.workspace.text_document import TextDocument

from hazels.analysis.rules import Finding, NullRule, ValidationRule
from hazels.lsp.capabilities.capabilities import DiagnosticCapability
from hazels.lsp.haze_language_server import HazeLanguageServer
from hazels.workspace.settings import HazeSettings

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "haze-ls"
DEFAULT_SEVERITY = DiagnosticSeverity.Warning


class DiagnosticsCapability(DiagnosticCapability):
    """Validates open documents and reports the findings."""

    def __init__(
        self,
        server: HazeLanguageServer,
        rule: ValidationRule | None = None,
    ) -> None:
        super().__init__(server)
        self.rule = rule or NullRule()
        self._pending: dict[str, asyncio.Task[None]] = {}

    @property
    def name(self) -> str:
        return "diagnostics"

    @property
    def description(self) -> str:
        return f"Report problems found by the {self.rule.name} rule"

    def register(self) -> None:
        text_sync = self.server.text_sync_manager
        text_sync.add_on_open_hook(self._on_open)
        text_sync.add_on_change_hook(self._on_change)
        text_sync.add_on_close_hook(self._on_close)

    async def can_handle(self, params: DocumentDiagnosticParams) -> bool:
        return True

    async def diagnose(self, uri: str) -> list[Diagnostic]:
        document = self.server.documents.get(uri)
        if document is None:
            return []
        return await self.validate(document)

    async def validate(self, document: TextDocument) -> list[Diagnostic]:
        """Run the rule over a document and build at most N diagnostics."""
        settings = await self._settings_for(document.uri)
        limit = settings.max_number_of_problems

        findings = islice(self.rule.check(document), limit)
        return [self._to_diagnostic(document, finding) for finding in findings]

    def schedule(self, uri: str) -> asyncio.Task[None]:
        """Start a push validation, superseding any pending one for the URI."""
        self.cancel(uri)

        task = asyncio.ensure_future(self._publish(uri))
        self._pending[uri] = task

        def _done(finished: asyncio.Task[None]) -> None:
            if self._pending.get(uri) is finished:
                del self._pending[uri]

        task.add_done_callback(_done)
        return task

    def cancel(self, uri: str) -> None:
        """Drop the pending push validation of a document, if any."""
        task = self._pending.pop(uri, None)
        if task is not None:
            task.cancel()

    def refresh(self) -> None:
        session = self.server.session
        if session is not None and session.supports_diagnostic_refresh:
            self.server.workspace_diagnostic_refresh(None).add_done_callback(
                self._on_refresh_done
            )

        for uri in self.server.documents:
            self.schedule(uri)

    def _on_refresh_done(self, future: Future[None]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("Diagnostic refresh request failed: %r", error)
            self.server.window_log_message(
                LogMessageParams(
                    type=MessageType.Warning,
                    message=f"Diagnostic refresh request failed: {type(error).__name__}: {error}"
                )
            )

    async def _settings_for(self, uri: str) -> HazeSettings:
        if self.server.settings_cache is None:
            return HazeSettings()
        return await self.server.settings_cache.get(uri)

    def _to_diagnostic(self, document: TextDocument, finding: Finding) -> Diagnostic:
        diagnostic = Diagnostic(
            range=finding.range,
            message=finding.message,
            severity=finding.severity or DEFAULT_SEVERITY,
            code=finding.code,
            source=DIAGNOSTIC_SOURCE,
        )

        session = self.server.session
        if finding.related and session is not None and session.supports_diagnostic_related_info:
            diagnostic.related_information = [
                DiagnosticRelatedInformation(
                    location=Location(uri=note.uri or document.uri, range=note.range),
                    message=note.message,
                )
                for note in finding.related
            ]

        return diagnostic

    async def _publish(self, uri: str) -> None:
        document = self.server.documents.get(uri)
        if document is None:
            return

        version = document.version
        try:
            diagnostics = await self.validate(document)
        except Exception as e:
            logger.exception("Validation of %s failed", uri)
            self.server.window_log_message(
                LogMessageParams(
                    type=MessageType.Error,
                    message=f"Validation of {uri} failed: {type(e).__name__}: {e}"
                )
            )
            return

        # Superseded while waiting for settings
        if self.server.documents.get(uri) is not document or document.version != version:
            return

        self.server.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, version=version, diagnostics=diagnostics)
        )

    async def _on_open(self, params: DidOpenTextDocumentParams) -> None:
        self.schedule(params.text_document.uri)

    async def _on_change(self, params: DidChangeTextDocumentParams) -> None:
        self.schedule(params.text_document.uri)

    async def _on_close(self, params: DidCloseTextDocumentParams) -> None:
        uri = params.text_document.uri
        self.cancel(uri)
        self.server.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=[])
        )
