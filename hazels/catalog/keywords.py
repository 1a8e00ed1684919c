"""
Haze keyword catalog.

Every completion the server offers comes from this table. Each entry is
identified by a catalog key (a TokenKind value) which travels to the client
in CompletionItem.data and comes back on completionItem/resolve, where it is
used to look up the detail and documentation lazily.

The table is fixed at import time and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType


class TokenKind(IntEnum):
    """Catalog keys. Values are sent to the client, keep them stable."""

    # declarators
    FUNCTION = 0
    # interpreter-specific
    INTRINSIC = 1
    GEOMETRY = 2

    # type specifiers
    BYTE = 3
    STRING = 4
    NVR = 5

    # control flow
    RETURN = 6
    WHILE = 7
    FOR = 8
    IF = 9
    ELSE = 10

    ASM = 11
    PRINT = 12

    # dot directives
    DOTMACRO = 13
    DOTDEFINE = 14
    DOTORG = 15
    # interpreter-specific
    DOTHOOK = 16
    DOTUNHOOK = 17

    # registers
    R0 = 18
    R1 = 19
    R2 = 20
    R3 = 21

    # assembly opcodes
    MOVE = 22
    LOAD = 23
    COPY = 24
    SAVE = 25
    IADD = 26
    ISUB = 27
    BAND = 28
    BIOR = 29
    BXOR = 30
    CALL = 31
    EXIT = 32
    PUSH = 33
    PULL = 34
    BRNZ = 35
    BOOL = 36


class DetailNotFoundError(KeyError):
    """Raised when a catalog key has no entry."""

    def __init__(self, key: object) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"No catalog entry for key {self.key!r}"


@dataclass(frozen=True)
class CatalogEntry:
    """One keyword suggestion and its lazily resolved detail."""

    key: TokenKind
    label: str
    detail: str
    documentation: str


def _entry(key: TokenKind, label: str, documentation: str) -> CatalogEntry:
    return CatalogEntry(key=key, label=label, detail=label, documentation=documentation)


# Display order of the completion list.
CATALOG: tuple[CatalogEntry, ...] = (
    _entry(TokenKind.FUNCTION, "function",
           "function {typename} {identifier} = ( {arguments} ) {statement}"),
    _entry(TokenKind.INTRINSIC, "intrinsic", "intrinsic {identifier} = {value};"),
    _entry(TokenKind.GEOMETRY, "geometry", "geometry {WIP};"),

    _entry(TokenKind.BYTE, "byte", "byte {identifier} = {expression};"),
    _entry(TokenKind.STRING, "string", 'string {identifier} = "{text}";'),
    _entry(TokenKind.NVR, "nvr", "function nvr {identifier} = ..."),

    _entry(TokenKind.RETURN, "return", "return {expression};"),
    _entry(TokenKind.WHILE, "while", "while ({expression}) {statement}"),
    _entry(TokenKind.FOR, "for",
           "for ({statement}; {expression}; {expression}) {statement}"),
    _entry(TokenKind.IF, "if", "if ({expression}) {statement}"),
    _entry(TokenKind.ELSE, "else", "if ... else {statement}"),

    _entry(TokenKind.ASM, "asm", "asm { {commands} }"),
    _entry(TokenKind.PRINT, "print", "print({expression});"),

    _entry(TokenKind.DOTMACRO, ".macro",
           ".macro {identifier} = ({arguments}): { {substitutions} }"),
    _entry(TokenKind.DOTDEFINE, ".define", ".define {identifier} = {constexpr}"),
    _entry(TokenKind.DOTORG, ".org", ".org {address}"),
    _entry(TokenKind.DOTHOOK, ".hook", ".hook"),
    _entry(TokenKind.DOTUNHOOK, ".unhook", ".unhook"),

    _entry(TokenKind.R0, "r0", "r0"),
    _entry(TokenKind.R1, "r1", "r1"),
    _entry(TokenKind.R2, "r2", "r2"),
    _entry(TokenKind.R3, "r3", "r3"),

    _entry(TokenKind.MOVE, "move", "move {dst-reg}, {src-reg}"),
    _entry(TokenKind.LOAD, "load", "load {dst-reg}, &{src-addr}"),
    _entry(TokenKind.SAVE, "save", "save &{dst-addr}, {src-reg}"),
    _entry(TokenKind.COPY, "copy", "copy {dst-reg}, #{src-imm}"),
    _entry(TokenKind.IADD, "iadd", "iadd {dst-reg}, {src-reg}"),
    _entry(TokenKind.ISUB, "isub", "isub {dst-reg}, {src-reg}"),
    _entry(TokenKind.BAND, "band", "band {dst-reg}, {src-reg}"),
    _entry(TokenKind.BIOR, "bior", "bior {dst-reg}, {src-reg}"),
    _entry(TokenKind.BXOR, "bxor", "bxor {dst-reg}, {src-reg}"),
    _entry(TokenKind.CALL, "call", "call &{dst-addr}"),
    _entry(TokenKind.EXIT, "exit", "exit"),
    _entry(TokenKind.PUSH, "push", "push {src-reg}"),
    _entry(TokenKind.PULL, "pull", "pull {dst-reg}"),
    _entry(TokenKind.BRNZ, "brnz", "brnz &{dst-addr}, {src-reg}"),
    _entry(TokenKind.BOOL, "bool", "bool {src-reg}"),
)

_BY_KEY = MappingProxyType({entry.key: entry for entry in CATALOG})


def list_entries() -> tuple[CatalogEntry, ...]:
    """Return the whole catalog in display order."""
    return CATALOG


def get_entry(key: object) -> CatalogEntry:
    """
    Look up a catalog entry by key.

    The key usually comes back from the client as CompletionItem.data, so it
    may be any JSON value. Only integers naming a TokenKind are accepted.

    Raises:
        DetailNotFoundError: if the key is not in the catalog
    """
    # bool is an int subclass but never a valid key
    if isinstance(key, bool) or not isinstance(key, int):
        raise DetailNotFoundError(key)

    try:
        return _BY_KEY[TokenKind(key)]
    except ValueError:
        raise DetailNotFoundError(key) from None
