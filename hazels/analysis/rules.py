"""
Validation rules.

A rule inspects one document and yields findings. The diagnostics capability
turns findings into LSP diagnostics, applying the problem cap, the default
severity and the related-information gate, so rules only describe what they
found and where.

Rules are consumed lazily: once the problem cap is reached the generator is
not advanced any further, so a rule may yield findings as it scans.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from lsprotocol.types import DiagnosticSeverity, Range
from pygls.workspace.text_document import TextDocument


@dataclass(frozen=True)
class RelatedNote:
    """Secondary location attached to a finding."""

    range: Range
    message: str
    # None means the document the finding belongs to
    uri: str | None = None


@dataclass(frozen=True)
class Finding:
    """A single problem reported by a rule."""

    range: Range
    message: str
    severity: DiagnosticSeverity | None = None
    code: str | None = None
    related: tuple[RelatedNote, ...] = field(default_factory=tuple)


class ValidationRule(ABC):
    """Base class for analysis rules."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this rule."""
        pass

    @abstractmethod
    def check(self, document: TextDocument) -> Iterable[Finding]:
        """Yield findings for the document, in document order."""
        pass


class NullRule(ValidationRule):
    """Rule used when no language analysis is wired in. Finds nothing."""

    @property
    def name(self) -> str:
        return "null"

    def check(self, document: TextDocument) -> Iterable[Finding]:
        return ()
