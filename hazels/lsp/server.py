import uuid

from lsprotocol.types import (
    COMPLETION_ITEM_RESOLVE,
    INITIALIZE,
    INITIALIZED,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DIAGNOSTIC,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    WORKSPACE_DID_CHANGE_WATCHED_FILES,
    WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS,
    CompletionItem,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DiagnosticOptions,
    DidChangeConfigurationParams,
    DidChangeWatchedFilesParams,
    DidChangeWorkspaceFoldersParams,
    DocumentDiagnosticParams,
    InitializedParams,
    InitializeParams,
    LogMessageParams,
    MessageType,
    Registration,
    RegistrationParams,
    RelatedFullDocumentDiagnosticReport,
)

from hazels import __version__
from hazels.lsp.capabilities.capabilities import CapabilityManager
from hazels.lsp.haze_language_server import HazeLanguageServer
from hazels.lsp.session import SessionCapabilities
from hazels.lsp.text_sync_manager import TextSyncManager
from hazels.workspace.settings import SettingsCache


def create_server() -> HazeLanguageServer:
    """
    Creates and returns a configured Language Server instance.

    The LanguageServer class from pygls handles:
    - JSON-RPC communication with clients (editors)
    - Request/response lifecycle
    - Notifications and event handling

    Every feature is registered here, before the client connects, so pygls
    sees all of them when it builds the initialize result. Components that
    depend on what the client supports are created in initialize.
    """
    server = HazeLanguageServer("haze-ls", __version__)

    # Text sync first, so capabilities can add hooks when they register.
    server.text_sync_manager = TextSyncManager(server, server.documents)
    server.text_sync_manager.register_handlers()

    server.capability_manager = CapabilityManager(server)
    server.capability_manager.register_all()

    @server.feature(INITIALIZE)
    def initialize(ls: HazeLanguageServer, params: InitializeParams):
        """
        Set up the components that depend on what the client supports.

        pygls calls this before it builds the initialize result; the protocol
        applies negotiate() to that result once it is built.
        """
        if ls.session is not None:
            ls.window_log_message(
                LogMessageParams(
                    MessageType.Warning, "Ignoring repeated initialize request"
                )
            )
            return

        ls.session = SessionCapabilities.from_client(params.capabilities)

        # Same encoding pygls chose for the workspace it created for this session
        ls.documents.position_codec = ls.workspace.position_codec

        ls.settings_cache = SettingsCache(ls, ls.session)
        ls.text_sync_manager.add_on_close_hook(ls.settings_cache.on_document_closed)

    @server.feature(INITIALIZED)
    async def initialized(ls: HazeLanguageServer, params: InitializedParams):
        """Register for configuration changes once the client is ready."""
        if ls.session is None or not ls.session.supports_workspace_configuration:
            return

        try:
            await ls.client_register_capability_async(
                RegistrationParams(
                    registrations=[
                        Registration(
                            id=str(uuid.uuid4()),
                            method=WORKSPACE_DID_CHANGE_CONFIGURATION,
                        )
                    ]
                )
            )
        except Exception as e:
            ls.window_log_message(
                LogMessageParams(
                    MessageType.Warning,
                    f"Could not register for configuration changes: {e}",
                )
            )

    @server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
    def did_change_configuration(
        ls: HazeLanguageServer, params: DidChangeConfigurationParams
    ):
        """Drop cached settings and recompute diagnostics with the new ones."""
        if ls.session is None or ls.settings_cache is None:
            return

        if ls.session.supports_workspace_configuration:
            ls.settings_cache.clear()
        else:
            ls.settings_cache.update_global(params.settings)

        ls.capability_manager.refresh_diagnostics()

    @server.feature(WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS)
    def did_change_workspace_folders(
        ls: HazeLanguageServer, params: DidChangeWorkspaceFoldersParams
    ):
        ls.window_log_message(
            LogMessageParams(MessageType.Log, "Workspace folder change event received.")
        )

    @server.feature(WORKSPACE_DID_CHANGE_WATCHED_FILES)
    def did_change_watched_files(
        ls: HazeLanguageServer, params: DidChangeWatchedFilesParams
    ):
        ls.window_log_message(
            LogMessageParams(
                MessageType.Log,
                f"Watched files changed: {len(params.changes)} event(s)",
            )
        )

    # Register aggregated handlers
    @server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions(resolve_provider=True))
    async def completion(ls: HazeLanguageServer, params: CompletionParams):
        if ls.capability_manager:
            return await ls.capability_manager.handle_completion(params)
        return CompletionList(is_incomplete=False, items=[])

    @server.feature(COMPLETION_ITEM_RESOLVE)
    async def completion_resolve(ls: HazeLanguageServer, item: CompletionItem):
        if ls.capability_manager:
            return await ls.capability_manager.handle_completion_resolve(item)
        return item

    @server.feature(
        TEXT_DOCUMENT_DIAGNOSTIC,
        DiagnosticOptions(inter_file_dependencies=False, workspace_diagnostics=False),
    )
    async def diagnostic(ls: HazeLanguageServer, params: DocumentDiagnosticParams):
        if ls.capability_manager:
            return await ls.capability_manager.handle_diagnostic(params)
        return RelatedFullDocumentDiagnosticReport(items=[])

    return server
