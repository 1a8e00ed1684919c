"""
Per-document settings for the Haze Language Server.

Settings live in the `haze-ls` configuration section on the client side:

    "haze-ls.maxNumberOfProblems": 100,
    "haze-ls.trace.server": "off"

When the client supports workspace/configuration, settings are requested per
document (scoped by URI) and memoized until the document closes or the
client reports a configuration change. Otherwise a single global value is
used, updated from the didChangeConfiguration payload.

Design Principles:
1. Lazy (ask the client only when a document needs settings)
2. Shared (concurrent callers for one URI wait on the same request)
3. Fail open (a failed or slow request yields defaults, never an error)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lsprotocol.types import (
    ConfigurationItem,
    ConfigurationParams,
    DidCloseTextDocumentParams,
    LogMessageParams,
    MessageType,
)

if TYPE_CHECKING:
    from hazels.lsp.haze_language_server import HazeLanguageServer
    from hazels.lsp.session import SessionCapabilities

logger = logging.getLogger(__name__)

SECTION = "haze-ls"

DEFAULT_MAX_NUMBER_OF_PROBLEMS = 100
TRACE_LEVELS = ("off", "messages", "verbose")

# Seconds to wait for a workspace/configuration response
DEFAULT_FETCH_TIMEOUT = 5.0


@dataclass(frozen=True)
class HazeSettings:
    """Settings that affect one document."""

    max_number_of_problems: int = DEFAULT_MAX_NUMBER_OF_PROBLEMS
    trace_server: str = "off"

    @classmethod
    def from_dict(cls, data: Any) -> HazeSettings:
        """
        Build settings from the client's JSON.

        Unknown keys are ignored. Missing or malformed values fall back to
        the default for that field only.
        """
        if not isinstance(data, dict):
            return cls()

        max_problems = data.get("maxNumberOfProblems")
        if isinstance(max_problems, bool) or not isinstance(max_problems, (int, float)):
            max_problems = DEFAULT_MAX_NUMBER_OF_PROBLEMS
        elif max_problems < 0:
            max_problems = DEFAULT_MAX_NUMBER_OF_PROBLEMS

        trace = data.get("trace")
        trace_server = trace.get("server") if isinstance(trace, dict) else None
        if trace_server not in TRACE_LEVELS:
            trace_server = "off"

        return cls(max_number_of_problems=int(max_problems), trace_server=trace_server)


class SettingsCache:
    """
    Memoized settings lookup keyed by document URI.

    Usage:
        cache = SettingsCache(server, session)
        settings = await cache.get(params.text_document.uri)

        # on didClose
        cache.evict(uri)

        # on didChangeConfiguration
        cache.clear()
    """

    def __init__(
        self,
        server: HazeLanguageServer,
        session: SessionCapabilities,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self.server = server
        self.session = session
        self.timeout = timeout

        self.global_settings = HazeSettings()
        self._pending: dict[str, asyncio.Future[HazeSettings | None]] = {}

    def __contains__(self, uri: str) -> bool:
        return uri in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def get(self, uri: str) -> HazeSettings:
        """Return the settings for a document, asking the client at most once."""
        if not self.session.supports_workspace_configuration:
            return self.global_settings

        future = self._pending.get(uri)
        if future is None:
            future = asyncio.ensure_future(self._fetch(uri))
            self._pending[uri] = future

        # A cancelled caller (superseded validation) must not cancel the
        # request other callers are waiting on.
        settings = await asyncio.shield(future)
        if settings is None:
            if self._pending.get(uri) is future:
                del self._pending[uri]
            return HazeSettings()

        return settings

    def evict(self, uri: str) -> None:
        """Forget the settings of one document."""
        self._pending.pop(uri, None)

    async def on_document_closed(self, params: DidCloseTextDocumentParams) -> None:
        """Text sync hook: only keep settings for open documents."""
        self.evict(params.text_document.uri)

    def clear(self) -> None:
        """Forget all cached settings."""
        self._pending.clear()

    def update_global(self, payload: Any) -> None:
        """
        Replace the global settings from a didChangeConfiguration payload.

        Only meaningful for clients without workspace/configuration support,
        which push the whole settings object instead.
        """
        section = payload.get(SECTION) if isinstance(payload, dict) else None
        self.global_settings = HazeSettings.from_dict(section)

    async def _fetch(self, uri: str) -> HazeSettings | None:
        params = ConfigurationParams(
            items=[ConfigurationItem(scope_uri=uri, section=SECTION)]
        )
        try:
            result = await asyncio.wait_for(
                self.server.workspace_configuration_async(params),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning("Settings fetch for %s failed: %r", uri, e)
            self.server.window_log_message(
                LogMessageParams(
                    type=MessageType.Warning,
                    message=f"Could not fetch settings for {uri}, using defaults: "
                            f"{type(e).__name__}: {e}"
                )
            )
            return None

        return HazeSettings.from_dict(result[0] if result else None)
