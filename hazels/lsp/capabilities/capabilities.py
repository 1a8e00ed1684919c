"""
LSP Capabilities Manager

This module manages LSP feature handlers (completion, diagnostics) using a
plugin architecture.

Design Principles:
1. Plugin-based (add capabilities without modifying core)
2. Type-safe (abstract base class)
3. Composable (multiple handlers for same feature)
4. Testable (isolated capability handlers)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from lsprotocol.types import (
    CompletionItem,
    CompletionList,
    CompletionParams,
    Diagnostic,
    DocumentDiagnosticParams,
    LogMessageParams,
    MessageType,
    RelatedFullDocumentDiagnosticReport,
)


if TYPE_CHECKING:
    from hazels.lsp.haze_language_server import HazeLanguageServer

logger = logging.getLogger(__name__)


class Capability(ABC):
    """
    Base class for all LSP capability handlers.

    Each capability can handle one or more LSP features and decides whether
    it can handle a specific request based on context.
    """

    def __init__(self, server: HazeLanguageServer) -> None:
        self.server = server

    def register(self) -> None:
        """
        Register hooks with the server.

        This is called once during server creation. Feature handlers are
        registered by the server factory and delegate to the manager.
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this capability."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this capability does."""
        pass

    @abstractmethod
    async def can_handle(self, params) -> bool:
        """Check if the capability can handle the request."""
        pass


class CompletionCapability(Capability):
    """Base class for completion capabilities."""

    @abstractmethod
    async def can_handle(self, params: CompletionParams) -> bool:
        """
        Check if this capability can handle the completion request.

        Returns True if this capability should provide completions
        for the current context.
        """
        pass

    @abstractmethod
    async def complete(self, params: CompletionParams) -> CompletionList:
        """
        Provide completion items.

        Only called if can_handle() returns True.
        """
        pass

    async def resolve(self, item: CompletionItem) -> CompletionItem | None:
        """
        Attach lazily computed details to one of our completion items.

        Returns None if the item was not produced by this capability.
        """
        return None


class DiagnosticCapability(Capability):
    """Base class for diagnostics capabilities."""

    @abstractmethod
    async def can_handle(self, params: DocumentDiagnosticParams) -> bool:
        """Check if this capability reports diagnostics for the document."""
        pass

    @abstractmethod
    async def diagnose(self, uri: str) -> list[Diagnostic]:
        """Compute the current diagnostics of an open document."""
        pass

    def refresh(self) -> None:
        """Recompute pushed diagnostics after a settings change."""
        pass


class CapabilityManager:
    """
    Central manager for all LSP capabilities.

    Usage:
        # In server creation
        manager = CapabilityManager(server)
        manager.register_all()
    """

    def __init__(
        self,
        server: HazeLanguageServer,
        capabilities: dict[str, Capability] | None = None,
    ):
        self.server = server

        # Default capabilities
        if capabilities is None:
            from hazels.lsp.capabilities.completion_capabilities import (
                KeywordCompletionCapability,
            )
            from hazels.lsp.capabilities.diagnostics_capabilities import (
                DiagnosticsCapability,
            )

            capabilities = {
                "keyword_completion": KeywordCompletionCapability(server),
                "diagnostics": DiagnosticsCapability(server),
            }

        self.capabilities = capabilities
        self._registered = False

    def register_all(self) -> None:
        """Register all capabilities with the server."""
        if self._registered:
            return

        for capability in self.capabilities.values():
            capability.register()

        self._registered = True

    def get_capability(self, name: str) -> Capability | None:
        """Get a specific capability by name"""
        return self.capabilities.get(name)

    def get_capabilities_by_type(self, capability_type: type) -> list[Capability]:
        """Get all capabilities of a specific type (e.g., all CompletionCapability)."""
        return [
            cap
            for cap in self.capabilities.values()
            if isinstance(cap, capability_type)
        ]

    def _log_error(self, message: str) -> None:
        logger.error(message)
        self.server.window_log_message(
            LogMessageParams(type=MessageType.Error, message=message)
        )

    async def handle_completion(self, params: CompletionParams) -> CompletionList:
        """
        Handle completion requests by delegating to capable handlers.

        This aggregates results from all completion capabilities that
        can handle the request.
        """
        all_items = []

        for capability in self.get_capabilities_by_type(CompletionCapability):
            try:
                if await capability.can_handle(params):
                    result = await capability.complete(params)  # pyright: ignore
                    all_items.extend(result.items)
            except Exception as e:
                self._log_error(f"Completion error in {capability.name}: {e}")

        return CompletionList(is_incomplete=False, items=all_items)

    async def handle_completion_resolve(self, item: CompletionItem) -> CompletionItem:
        """
        Resolve a completion item with its details.

        The first capability that recognizes the item resolves it. An item
        nobody recognizes is returned unchanged.
        """
        for capability in self.get_capabilities_by_type(CompletionCapability):
            try:
                resolved = await capability.resolve(item)  # pyright: ignore
            except Exception as e:
                self._log_error(f"Completion resolve error in {capability.name}: {e}")
                continue
            if resolved is not None:
                return resolved

        self.server.window_log_message(
            LogMessageParams(
                type=MessageType.Warning,
                message=f"No completion detail for {item.label!r} (data={item.data!r})"
            )
        )
        return item

    async def handle_diagnostic(
        self, params: DocumentDiagnosticParams
    ) -> RelatedFullDocumentDiagnosticReport:
        """
        Handle a diagnostics pull by aggregating all diagnostics capabilities.

        Always answers with a full report. A document the server does not
        know gets an empty one.
        """
        uri = params.text_document.uri
        items: list[Diagnostic] = []

        if uri in self.server.documents:
            for capability in self.get_capabilities_by_type(DiagnosticCapability):
                try:
                    if await capability.can_handle(params):
                        items.extend(await capability.diagnose(uri))  # pyright: ignore
                except Exception as e:
                    self._log_error(f"Diagnostics error in {capability.name}: {e}")

        return RelatedFullDocumentDiagnosticReport(items=items)

    def refresh_diagnostics(self) -> None:
        """Ask every diagnostics capability to recompute its results."""
        for capability in self.get_capabilities_by_type(DiagnosticCapability):
            try:
                capability.refresh()  # pyright: ignore
            except Exception as e:
                self._log_error(f"Diagnostics refresh error in {capability.name}: {e}")
