from lsprotocol.types import TextDocumentSyncKind
from pygls.lsp.server import LanguageServer

from hazels.lsp.capabilities.capabilities import CapabilityManager
from hazels.lsp.protocol import HazeLanguageServerProtocol
from hazels.lsp.session import SessionCapabilities
from hazels.lsp.text_sync_manager import TextSyncManager
from hazels.workspace.documents import DocumentStore
from hazels.workspace.settings import SettingsCache


class HazeLanguageServer(LanguageServer):
    """
    Custom Language Server holding the state of one editor session.

    Attributes:
        session: What the client supports; None until initialize completes
        documents: Open Haze documents, the source of truth for features
        settings_cache: Per-document settings; None until initialize completes
        text_sync_manager: Document lifecycle handlers and hooks
        capability_manager: Completion and diagnostics plugins
    """

    def __init__(self, name: str, version: str):
        super().__init__(
            name,
            version,
            text_document_sync_kind=TextDocumentSyncKind.Incremental,
            protocol_cls=HazeLanguageServerProtocol,
        )

        self.session: SessionCapabilities | None = None
        self.documents = DocumentStore()
        self.settings_cache: SettingsCache | None = None
        self.text_sync_manager: TextSyncManager | None = None
        self.capability_manager: CapabilityManager | None = None
