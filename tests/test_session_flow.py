"""
End-to-end tests of one editor session.

The server is built with create_server(); only the calls that would go over
the wire (log messages, configuration requests, published diagnostics) are
replaced with mocks. Document notifications are fed to the TextSyncManager
the same way the registered feature handlers do; the handshake and
configuration changes go through the protocol as raw JSON-RPC messages.
"""
import asyncio
import json
from unittest.mock import AsyncMock, Mock

import pytest
from lsprotocol.types import (
    INITIALIZED,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    CompletionParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentDiagnosticParams,
    InitializedParams,
    MessageType,
    Position,
    Range,
    TextDocumentContentChangePartial,
    TextDocumentIdentifier,
    TextDocumentItem,
    TextDocumentSyncKind,
    VersionedTextDocumentIdentifier,
)

from hazels.lsp.server import create_server
from hazels.lsp.session import SessionCapabilities
from hazels.workspace.settings import SettingsCache

URI = "file:///project/a.hz"


@pytest.fixture
def server():
    server = create_server()
    server.window_log_message = Mock()
    server.text_document_publish_diagnostics = Mock()
    server.workspace_diagnostic_refresh = Mock()
    server.client_register_capability_async = AsyncMock()
    server.workspace_configuration_async = AsyncMock(
        return_value=[{"maxNumberOfProblems": 100}]
    )
    return server


def _start_session(server, session):
    """What the initialize handler sets up, without a client connection."""
    server.session = session
    server.settings_cache = SettingsCache(server, session)
    server.text_sync_manager.add_on_close_hook(server.settings_cache.on_document_closed)


async def _settle(server):
    diagnostics = server.capability_manager.get_capability("diagnostics")
    await asyncio.gather(*list(diagnostics._pending.values()), return_exceptions=True)


async def _open(server, text="function main", version=1, uri=URI):
    await server.text_sync_manager.did_open(
        DidOpenTextDocumentParams(
            text_document=TextDocumentItem(uri=uri, language_id="hz", version=version, text=text)
        )
    )


async def _insert(server, version, line, character, text, uri=URI):
    position = Position(line=line, character=character)
    await server.text_sync_manager.did_change(
        DidChangeTextDocumentParams(
            text_document=VersionedTextDocumentIdentifier(uri=uri, version=version),
            content_changes=[
                TextDocumentContentChangePartial(
                    range=Range(start=position, end=position), text=text
                )
            ],
        )
    )


async def _close(server, uri=URI):
    await server.text_sync_manager.did_close(
        DidCloseTextDocumentParams(text_document=TextDocumentIdentifier(uri=uri))
    )


async def _pull(server, uri=URI):
    return await server.capability_manager.handle_diagnostic(
        DocumentDiagnosticParams(text_document=TextDocumentIdentifier(uri=uri))
    )


@pytest.mark.asyncio
async def test_open_pull_close_pull(server):
    _start_session(server, SessionCapabilities(supports_workspace_configuration=True))

    await _open(server, "function main", 1)
    await _settle(server)
    report = await _pull(server)
    assert report.kind == "full"
    assert report.items == []

    await _close(server)
    report = await _pull(server)
    assert report.kind == "full"
    assert report.items == []


@pytest.mark.asyncio
async def test_pull_for_never_opened_document(server):
    _start_session(server, SessionCapabilities())

    report = await _pull(server, "file:///project/unknown.hz")

    assert report.kind == "full"
    assert report.items == []


@pytest.mark.asyncio
async def test_open_and_change_push_diagnostics(server):
    _start_session(server, SessionCapabilities())

    await _open(server, "function main", 1)
    await _settle(server)
    await _insert(server, 2, 0, 13, "()")
    await _settle(server)

    published = [c.args[0] for c in server.text_document_publish_diagnostics.call_args_list]
    assert [(p.uri, p.version) for p in published] == [(URI, 1), (URI, 2)]
    assert server.documents.get(URI).source == "function main()"


@pytest.mark.asyncio
async def test_stale_change_is_dropped(server):
    _start_session(server, SessionCapabilities())

    await _open(server, "function main", 3)
    await _settle(server)
    await _insert(server, 3, 0, 0, "byte ")
    await _insert(server, 2, 0, 0, "byte ")
    await _settle(server)

    assert server.documents.get(URI).source == "function main"
    assert server.documents.get(URI).version == 3
    assert server.text_document_publish_diagnostics.call_count == 1


@pytest.mark.asyncio
async def test_close_purges_settings_and_reopen_requeries(server):
    _start_session(server, SessionCapabilities(supports_workspace_configuration=True))

    await _open(server)
    await _settle(server)
    await _pull(server)
    assert server.workspace_configuration_async.await_count == 1

    await _close(server)
    assert URI not in server.settings_cache

    await _open(server)
    await _settle(server)
    assert server.workspace_configuration_async.await_count == 2


@pytest.mark.asyncio
async def test_completion_and_resolve(server):
    listing = await server.capability_manager.handle_completion(
        CompletionParams(
            text_document=TextDocumentIdentifier(uri=URI),
            position=Position(line=0, character=0),
        )
    )
    item = next(item for item in listing.items if item.label == "while")

    resolved = await server.capability_manager.handle_completion_resolve(item)

    assert resolved.detail == "while"
    assert resolved.documentation



class CollectingWriter:
    """Transport writer that keeps every message the server sends."""

    def __init__(self):
        self.messages = []

    def write(self, data: bytes):
        self.messages.append(json.loads(data.decode("utf-8")))

    def close(self):
        pass

    def reply(self, msg_id):
        return next(m for m in self.messages if m.get("id") == msg_id and "method" not in m)


def _connect(server) -> CollectingWriter:
    writer = CollectingWriter()
    server.protocol.set_writer(writer, include_headers=False)
    return writer


def _send(server, message: dict):
    message = {"jsonrpc": "2.0", **message}
    server.protocol.handle_message(server.protocol.structure_message(message))


def _initialize(server, capabilities: dict, msg_id=1):
    _send(
        server,
        {
            "id": msg_id,
            "method": "initialize",
            "params": {"processId": None, "rootUri": None, "capabilities": capabilities},
        },
    )


@pytest.mark.asyncio
async def test_initialize_over_the_wire(server):
    writer = _connect(server)

    _initialize(server, {"workspace": {"configuration": True}})

    reply = writer.reply(1)
    assert "error" not in reply
    capabilities = reply["result"]["capabilities"]
    assert capabilities["textDocumentSync"]["change"] == TextDocumentSyncKind.Incremental
    assert capabilities["completionProvider"]["resolveProvider"] is True
    assert capabilities["diagnosticProvider"]["workspaceDiagnostics"] is False
    assert "workspace" not in capabilities

    assert server.session.supports_workspace_configuration
    assert isinstance(server.settings_cache, SettingsCache)
    assert server.documents.position_codec is server.workspace.position_codec


@pytest.mark.asyncio
async def test_initialize_announces_workspace_folders_when_supported(server):
    writer = _connect(server)

    _initialize(server, {"workspace": {"workspaceFolders": True}})

    capabilities = writer.reply(1)["result"]["capabilities"]
    assert capabilities["workspace"]["workspaceFolders"] == {
        "supported": True,
        "changeNotifications": True,
    }
    assert server.session.supports_workspace_folders


@pytest.mark.asyncio
async def test_repeated_initialize_keeps_first_session(server):
    writer = _connect(server)
    _initialize(server, {"workspace": {"configuration": True}})
    session = server.session
    settings_cache = server.settings_cache

    _initialize(server, {"workspace": {"workspaceFolders": True}}, msg_id=2)

    reply = writer.reply(2)
    assert "error" not in reply
    assert "workspace" not in reply["result"]["capabilities"]
    assert server.session is session
    assert server.settings_cache is settings_cache
    call_args = server.window_log_message.call_args[0][0]
    assert call_args.type == MessageType.Warning


@pytest.mark.asyncio
async def test_initialized_registers_for_configuration_changes(server):
    _connect(server)
    _initialize(server, {"workspace": {"configuration": True}})

    await server.protocol.fm.features[INITIALIZED](InitializedParams())

    server.client_register_capability_async.assert_awaited_once()
    params = server.client_register_capability_async.call_args[0][0]
    assert [r.method for r in params.registrations] == [WORKSPACE_DID_CHANGE_CONFIGURATION]


@pytest.mark.asyncio
async def test_initialized_skips_registration_without_configuration_support(server):
    _connect(server)
    _initialize(server, {})

    await server.protocol.fm.features[INITIALIZED](InitializedParams())

    server.client_register_capability_async.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_registration_is_logged(server):
    server.client_register_capability_async.side_effect = RuntimeError("refused")
    _connect(server)
    _initialize(server, {"workspace": {"configuration": True}})

    await server.protocol.fm.features[INITIALIZED](InitializedParams())

    call_args = server.window_log_message.call_args[0][0]
    assert call_args.type == MessageType.Warning
    assert "refused" in call_args.message


@pytest.mark.asyncio
async def test_configuration_change_requeries_every_document(server):
    _connect(server)
    _initialize(
        server,
        {"workspace": {"configuration": True, "diagnostics": {"refreshSupport": True}}},
    )
    await _open(server, uri=URI)
    await _open(server, uri="file:///project/b.hz")
    await _settle(server)
    assert server.workspace_configuration_async.await_count == 2

    _send(server, {"method": "workspace/didChangeConfiguration", "params": {"settings": {}}})
    await _settle(server)

    assert server.workspace_configuration_async.await_count == 4
    server.workspace_diagnostic_refresh.assert_called_once_with(None)
    assert server.text_document_publish_diagnostics.call_count == 4


@pytest.mark.asyncio
async def test_configuration_change_without_configuration_support_replaces_globals(server):
    _connect(server)
    _initialize(server, {})
    await _open(server)
    await _settle(server)

    _send(
        server,
        {
            "method": "workspace/didChangeConfiguration",
            "params": {"settings": {"haze-ls": {"maxNumberOfProblems": 7}}},
        },
    )
    await _settle(server)

    assert server.settings_cache.global_settings.max_number_of_problems == 7
    assert (await server.settings_cache.get(URI)).max_number_of_problems == 7
    server.workspace_configuration_async.assert_not_awaited()
    server.workspace_diagnostic_refresh.assert_not_called()
    assert server.text_document_publish_diagnostics.call_count == 2


@pytest.mark.asyncio
async def test_configuration_change_before_initialize_is_ignored(server):
    handler = server.protocol.fm.features[WORKSPACE_DID_CHANGE_CONFIGURATION]

    handler(DidChangeConfigurationParams(settings={"haze-ls": {"maxNumberOfProblems": 7}}))

    assert server.settings_cache is None
    server.workspace_diagnostic_refresh.assert_not_called()
