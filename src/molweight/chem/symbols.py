"""Symbol table used for greedy longest-match scanning of formulas."""

from __future__ import annotations

from logging import getLogger
from typing import Sequence

import pydantic

from ..core.enums import AbbreviationMode, SymbolKind
from .abbreviations import AbbreviationTable
from .elements import ElementTable

logger = getLogger(__name__)


class SymbolEntry(pydantic.BaseModel):
    """A matchable symbol."""

    symbol: str
    """The symbol text."""

    kind: SymbolKind
    """Kind of entity referenced by the symbol."""

    ref: int | str
    """Atomic number for elements and symbol for abbreviations."""

    model_config = pydantic.ConfigDict(frozen=True)


class SymbolTable:
    """Immutable list of matchable symbols sorted by decreasing length and then alphabetically.

    Create a new instance with :py:meth:`build` after any change to the element or abbreviation tables.

    """

    def __init__(self, entries: Sequence[SymbolEntry]):
        self._entries = tuple(sorted(entries, key=lambda x: (-len(x.symbol), x.symbol)))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[SymbolEntry, ...]:
        return self._entries

    @classmethod
    def build(cls, elements: ElementTable, abbreviations: AbbreviationTable, mode: AbbreviationMode) -> SymbolTable:
        """Create a symbol table.

        :param elements: the element table
        :param abbreviations: the abbreviation table. Invalid abbreviations are always excluded.
        :param mode: defines which abbreviations are included

        """
        entries = [SymbolEntry(symbol=x.symbol, kind=SymbolKind.ELEMENT, ref=x.atomic_number) for x in elements]
        if mode != AbbreviationMode.NONE:
            include_amino_acids = mode == AbbreviationMode.NORMAL_PLUS_AMINO_ACIDS
            for abbreviation in abbreviations:
                if abbreviation.invalid or (abbreviation.is_amino_acid and not include_amino_acids):
                    continue
                entry = SymbolEntry(symbol=abbreviation.symbol, kind=SymbolKind.ABBREVIATION, ref=abbreviation.symbol)
                entries.append(entry)
        table = cls(entries)
        logger.debug(f"Built symbol table with {len(table)} symbols using mode `{mode.value}`.")
        return table

    def match(self, excerpt: str) -> SymbolEntry | None:
        """Find the first symbol that is a prefix of `excerpt`.

        :param excerpt: formula text starting at the current scan position
        :return: the longest matching entry or ``None`` if no symbol matches.

        """
        for entry in self._entries:
            if excerpt.startswith(entry.symbol):
                return entry
        return None
