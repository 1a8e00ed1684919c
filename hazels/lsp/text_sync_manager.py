"""
Text Synchronization Manager

Keeps the server's DocumentStore in step with the editor and provides hook
extension points for components that react to document lifecycle events.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from lsprotocol.types import (
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    LogMessageParams,
    MessageType,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
)

if TYPE_CHECKING:
    from hazels.lsp.haze_language_server import HazeLanguageServer
    from hazels.workspace.documents import DocumentStore

logger = logging.getLogger(__name__)

# Type aliases for hook signatures
OnOpenHook = Callable[[DidOpenTextDocumentParams], Awaitable[None]]
OnChangeHook = Callable[[DidChangeTextDocumentParams], Awaitable[None]]
OnCloseHook = Callable[[DidCloseTextDocumentParams], Awaitable[None]]

P = TypeVar("P")


class TextSyncManager:
    """
    Applies document lifecycle notifications and broadcasts them to hooks.

    Design Principles:
    - The DocumentStore is updated before any hook runs, and before the
      handler first suspends, so the store always reflects notifications in
      arrival order
    - Hooks only see accepted events (a stale change is dropped before
      broadcasting)
    - Errors are isolated (one hook failure doesn't affect others)
    - Hooks run in registration order

    Usage:
        # During server creation
        text_sync = TextSyncManager(server, server.documents)
        text_sync.register_handlers()
        server.text_sync_manager = text_sync

        # Components register hooks for the events they care about
        class DiagnosticsCapability(DiagnosticCapability):
            def register(self):
                text_sync = self.server.text_sync_manager
                text_sync.add_on_change_hook(self._on_change)
    """

    def __init__(self, server: HazeLanguageServer, documents: DocumentStore) -> None:
        self.server = server
        self.documents = documents

        self._on_open_hooks: list[OnOpenHook] = []
        self._on_change_hooks: list[OnChangeHook] = []
        self._on_close_hooks: list[OnCloseHook] = []

    def add_on_open_hook(self, hook: OnOpenHook) -> None:
        """
        Register a hook for document open events.

        The document is already in the store when the hook runs.
        """
        self._on_open_hooks.append(hook)

    def add_on_change_hook(self, hook: OnChangeHook) -> None:
        """
        Register a hook for accepted document changes.

        Called on every keystroke, after the change has been applied to the
        store. Changes the store ignored (stale version, unknown document)
        are not broadcast.
        """
        self._on_change_hooks.append(hook)

    def add_on_close_hook(self, hook: OnCloseHook) -> None:
        """
        Register a hook for document close events.

        The document has already been removed from the store. Use for cleanup
        of per-document state.
        """
        self._on_close_hooks.append(hook)

    async def _broadcast(
        self,
        event: str,
        hooks: list[Callable[[P], Awaitable[None]]],
        params: P,
    ) -> None:
        for hook in hooks:
            try:
                await hook(params)
            except Exception as e:
                logger.exception("Error in %s hook %r", event, hook)
                self.server.window_log_message(
                    LogMessageParams(
                        type=MessageType.Error,
                        message=f"Error in {event} hook {getattr(hook, '__name__', hook)}: "
                                f"{type(e).__name__}: {e}"
                    )
                )

    async def _broadcast_on_open(self, params: DidOpenTextDocumentParams) -> None:
        await self._broadcast("on_open", self._on_open_hooks, params)

    async def _broadcast_on_change(self, params: DidChangeTextDocumentParams) -> None:
        await self._broadcast("on_change", self._on_change_hooks, params)

    async def _broadcast_on_close(self, params: DidCloseTextDocumentParams) -> None:
        await self._broadcast("on_close", self._on_close_hooks, params)

    async def did_open(self, params: DidOpenTextDocumentParams) -> None:
        """Track a newly opened document and notify hooks."""
        item = params.text_document
        self.documents.open(
            item.uri,
            item.text,
            item.version,
            language_id=item.language_id,
        )
        self.server.window_log_message(
            LogMessageParams(
                type=MessageType.Info,
                message=f"Document opened: {item.uri} (version {item.version})"
            )
        )
        await self._broadcast_on_open(params)

    async def did_change(self, params: DidChangeTextDocumentParams) -> None:
        """Apply content changes, notifying hooks only if they were accepted."""
        identifier = params.text_document
        document = self.documents.change(
            identifier.uri, identifier.version, params.content_changes
        )
        if document is None:
            self.server.window_log_message(
                LogMessageParams(
                    type=MessageType.Log,
                    message=f"Ignoring change for {identifier.uri} "
                            f"(version {identifier.version})"
                )
            )
            return

        await self._broadcast_on_change(params)

    async def did_close(self, params: DidCloseTextDocumentParams) -> None:
        """Forget a closed document and notify hooks."""
        uri = params.text_document.uri
        self.documents.close(uri)
        self.server.window_log_message(
            LogMessageParams(
                type=MessageType.Info,
                message=f"Document closed: {uri}"
            )
        )
        await self._broadcast_on_close(params)

    def register_handlers(self) -> None:
        """
        Register LSP text synchronization handlers with the server.

        Registers handlers for:
        - textDocument/didOpen
        - textDocument/didChange
        - textDocument/didClose
        """

        @self.server.feature(TEXT_DOCUMENT_DID_OPEN)
        async def did_open(
            ls: HazeLanguageServer,
            params: DidOpenTextDocumentParams,
        ) -> None:
            await self.did_open(params)

        @self.server.feature(TEXT_DOCUMENT_DID_CHANGE)
        async def did_change(
            ls: HazeLanguageServer,
            params: DidChangeTextDocumentParams,
        ) -> None:
            await self.did_change(params)

        @self.server.feature(TEXT_DOCUMENT_DID_CLOSE)
        async def did_close(
            ls: HazeLanguageServer,
            params: DidCloseTextDocumentParams,
        ) -> None:
            await self.did_close(params)
