"""Pluggable analysis rules that feed diagnostics."""
from .rules import Finding, NullRule, RelatedNote, ValidationRule

__all__ = ['Finding', 'NullRule', 'RelatedNote', 'ValidationRule']
