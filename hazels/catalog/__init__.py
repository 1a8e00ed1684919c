"""Static keyword catalog for Haze completions."""
from .keywords import (
    CATALOG,
    CatalogEntry,
    DetailNotFoundError,
    TokenKind,
    get_entry,
    list_entries,
)

__all__ = [
    'CATALOG',
    'CatalogEntry',
    'DetailNotFoundError',
    'TokenKind',
    'get_entry',
    'list_entries',
]
