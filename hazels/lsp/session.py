"""
Session capabilities and capability negotiation.

The client announces what it supports in the initialize request. We reduce
that to a small immutable value object that every component consults,
instead of digging through the nested (and mostly optional) lsprotocol
structures at each call site.

Missing fields anywhere in the client structure mean "unsupported".
"""

from __future__ import annotations

from dataclasses import dataclass

from lsprotocol.types import (
    ClientCapabilities,
    CompletionOptions,
    DiagnosticOptions,
    FileOperationOptions,
    ServerCapabilities,
    TextDocumentSyncKind,
    TextDocumentSyncOptions,
    WorkspaceFoldersServerCapabilities,
    WorkspaceOptions,
)


def _lookup(obj: object, *path: str) -> object:
    for attr in path:
        if obj is None:
            return None
        obj = getattr(obj, attr, None)
    return obj


@dataclass(frozen=True)
class SessionCapabilities:
    """What the connected client supports, computed once per session."""

    supports_workspace_configuration: bool = False
    supports_workspace_folders: bool = False
    supports_diagnostic_related_info: bool = False
    supports_diagnostic_refresh: bool = False

    @classmethod
    def from_client(cls, capabilities: ClientCapabilities | None) -> SessionCapabilities:
        """Build from the client capabilities sent with initialize."""
        return cls(
            supports_workspace_configuration=bool(
                _lookup(capabilities, "workspace", "configuration")
            ),
            supports_workspace_folders=bool(
                _lookup(capabilities, "workspace", "workspace_folders")
            ),
            supports_diagnostic_related_info=bool(
                _lookup(
                    capabilities,
                    "text_document",
                    "publish_diagnostics",
                    "related_information",
                )
            ),
            supports_diagnostic_refresh=bool(
                _lookup(capabilities, "workspace", "diagnostics", "refresh_support")
            ),
        )


def negotiate(
    session: SessionCapabilities,
    capabilities: ServerCapabilities | None = None,
) -> ServerCapabilities:
    """
    Fill in the server capabilities announced in the initialize result.

    When `capabilities` is given it is updated in place (pygls builds one
    from the registered features and sends that same object back), otherwise
    a fresh instance is returned.

    The result always announces incremental sync, completion with resolve
    and per-document diagnostics. Workspace folder support is announced only
    when the client supports it; a workspace section left with nothing in it
    is dropped.
    """
    if capabilities is None:
        capabilities = ServerCapabilities()

    capabilities.text_document_sync = TextDocumentSyncOptions(
        open_close=True,
        change=TextDocumentSyncKind.Incremental,
    )
    capabilities.completion_provider = CompletionOptions(resolve_provider=True)
    capabilities.diagnostic_provider = DiagnosticOptions(
        inter_file_dependencies=False,
        workspace_diagnostics=False,
    )

    if session.supports_workspace_folders:
        folders = WorkspaceFoldersServerCapabilities(
            supported=True,
            change_notifications=True,
        )
        if capabilities.workspace is None:
            capabilities.workspace = WorkspaceOptions(workspace_folders=folders)
        else:
            capabilities.workspace.workspace_folders = folders
    elif capabilities.workspace is not None:
        capabilities.workspace.workspace_folders = None
        file_operations = capabilities.workspace.file_operations
        if file_operations is None or file_operations == FileOperationOptions():
            capabilities.workspace = None

    return capabilities
