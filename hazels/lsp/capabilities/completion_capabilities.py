"""
Keyword completion for Haze.

Completions are context free: every request gets the whole keyword catalog,
whatever the cursor position. Items carry only the label and catalog key;
detail and documentation are attached on completionItem/resolve.
"""

from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionParams,
)

from hazels.catalog.keywords import DetailNotFoundError, get_entry, list_entries
from hazels.lsp.capabilities.capabilities import CompletionCapability


class KeywordCompletionCapability(CompletionCapability):
    """Provides completion for Haze keywords, directives, registers and opcodes."""

    @property
    def name(self) -> str:
        return "keyword_completion"

    @property
    def description(self) -> str:
        return "Suggest Haze keywords and resolve their syntax documentation"

    async def can_handle(self, params: CompletionParams) -> bool:
        return True

    async def complete(self, params: CompletionParams) -> CompletionList:
        """Provide the keyword catalog. The position is not used."""
        items = [
            CompletionItem(
                label=entry.label,
                kind=CompletionItemKind.Keyword,
                data=int(entry.key),
            )
            for entry in list_entries()
        ]
        return CompletionList(is_incomplete=False, items=items)

    async def resolve(self, item: CompletionItem) -> CompletionItem | None:
        """Attach detail and documentation using the item's catalog key."""
        try:
            entry = get_entry(item.data)
        except DetailNotFoundError:
            return None

        item.detail = entry.detail
        item.documentation = entry.documentation
        return item
