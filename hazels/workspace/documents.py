"""
Open document tracking.

pygls keeps its own copy of every open document in `ls.workspace`, but it
applies every change it receives, whatever its version. The store below is
the copy the Haze features read from: it trusts the client's version numbers
and drops changes that are not newer than what it already holds, so
duplicated or reordered notifications cannot roll a document back.

Edits are applied with pygls' TextDocument, which handles both incremental
(range + text) and whole-document changes in the negotiated position
encoding.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from lsprotocol.types import TextDocumentContentChangeEvent
from pygls.workspace.position_codec import PositionCodec
from pygls.workspace.text_document import TextDocument


class DocumentStore:
    """Open Haze documents keyed by URI."""

    def __init__(self, position_codec: PositionCodec | None = None) -> None:
        self.position_codec = position_codec
        self._documents: dict[str, TextDocument] = {}

    def __contains__(self, uri: str) -> bool:
        return uri in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._documents))

    def get(self, uri: str) -> TextDocument | None:
        """Get an open document, or None if the URI is not open."""
        return self._documents.get(uri)

    def open(
        self,
        uri: str,
        text: str,
        version: int,
        language_id: str | None = None,
    ) -> TextDocument:
        """Start tracking a document. Re-opening a URI replaces its record."""
        document = TextDocument(
            uri,
            source=text,
            version=version,
            language_id=language_id,
            position_codec=self.position_codec,
        )
        self._documents[uri] = document
        return document

    def change(
        self,
        uri: str,
        version: int,
        changes: Sequence[TextDocumentContentChangeEvent],
    ) -> TextDocument | None:
        """
        Apply content changes in order and move the document to `version`.

        Returns:
            The updated document, or None when the change was ignored because
            the URI is not open or `version` is not newer than the stored one.
        """
        document = self._documents.get(uri)
        if document is None:
            return None

        if document.version is not None and version <= document.version:
            return None

        for change in changes:
            document.apply_change(change)
        document.version = version

        return document

    def close(self, uri: str) -> bool:
        """Stop tracking a document. Returns False if it was not open."""
        return self._documents.pop(uri, None) is not None
