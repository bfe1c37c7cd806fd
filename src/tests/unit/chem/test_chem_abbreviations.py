import pytest

from molweight.chem.abbreviations import (
    DEFAULT_ABBREVIATIONS,
    MAX_ABBREVIATION_COUNT,
    AbbreviationTable,
    check_abbreviation_symbol,
)
from molweight.core import messages
from molweight.core.exceptions import AbbreviationNotFound, InvalidAbbreviation
from molweight.core.models import AbbreviationDefinition


class TestCheckAbbreviationSymbol:
    def test_symbol_is_converted_to_proper_case(self):
        assert check_abbreviation_symbol("pHEN") == "Phen"

    @pytest.mark.parametrize(
        "symbol,code",
        [
            ("", messages.ABBREVIATION_EMPTY_SYMBOL),
            ("Abcdefg", messages.ABBREVIATION_TOO_LONG),
            ("Me2", messages.ABBREVIATION_NOT_LETTERS),
            ("M-e", messages.ABBREVIATION_NOT_LETTERS),
        ],
    )
    def test_invalid_symbol_raises_error(self, symbol: str, code: int):
        with pytest.raises(InvalidAbbreviation) as excinfo:
            check_abbreviation_symbol(symbol)
        assert excinfo.value.code == code


class TestAbbreviationTable:
    def test_defaults(self, abbreviations: AbbreviationTable):
        assert len(abbreviations) == len(DEFAULT_ABBREVIATIONS)
        assert "Me" in abbreviations
        assert "Gly" in abbreviations

    def test_empty_table(self):
        assert len(AbbreviationTable(defaults=False)) == 0

    def test_lookup_is_case_insensitive(self, abbreviations: AbbreviationTable):
        assert "ME" in abbreviations
        assert abbreviations.get("gly").symbol == "Gly"

    def test_get_missing_abbreviation_raises_error(self, abbreviations: AbbreviationTable):
        with pytest.raises(AbbreviationNotFound):
            abbreviations.get("Qwerty")

    def test_add(self, abbreviations: AbbreviationTable):
        abbreviations.add(AbbreviationDefinition(symbol="tmS", formula="Si(CH3)3", charge=-1.0))
        actual = abbreviations.get("Tms")
        assert actual.symbol == "Tms"
        assert actual.formula == "Si(CH3)3"

    def test_add_replaces_existing_definition(self, abbreviations: AbbreviationTable):
        n = len(abbreviations)
        abbreviations.add(AbbreviationDefinition(symbol="me", formula="CH2"))
        assert len(abbreviations) == n
        assert abbreviations.get("Me").formula == "CH2"

    def test_add_blank_formula_raises_error(self, abbreviations: AbbreviationTable):
        with pytest.raises(InvalidAbbreviation) as excinfo:
            abbreviations.add(AbbreviationDefinition(symbol="Bl", formula="  "))
        assert excinfo.value.code == messages.ABBREVIATION_BLANK_FORMULA

    def test_add_to_full_table_raises_error(self):
        table = AbbreviationTable(defaults=False)
        letters = "abcdefghijklmnopqrstuvwxyz"
        for k in range(MAX_ABBREVIATION_COUNT):
            symbol = "Q" + letters[k // 26 % 26] + letters[k % 26]
            table.add(AbbreviationDefinition(symbol=symbol, formula="H"))
        with pytest.raises(InvalidAbbreviation) as excinfo:
            table.add(AbbreviationDefinition(symbol="Zzz", formula="H"))
        assert excinfo.value.code == messages.ABBREVIATION_LIMIT_REACHED

    def test_replace_in_full_table(self):
        table = AbbreviationTable(defaults=False)
        letters = "abcdefghijklmnopqrstuvwxyz"
        for k in range(MAX_ABBREVIATION_COUNT):
            symbol = "Q" + letters[k // 26 % 26] + letters[k % 26]
            table.add(AbbreviationDefinition(symbol=symbol, formula="H"))
        table.add(AbbreviationDefinition(symbol="Qaa", formula="H2"))
        assert table.get("Qaa").formula == "H2"

    def test_remove(self, abbreviations: AbbreviationTable):
        removed = abbreviations.remove("me")
        assert removed.symbol == "Me"
        assert "Me" not in abbreviations

    def test_remove_missing_abbreviation_raises_error(self, abbreviations: AbbreviationTable):
        with pytest.raises(AbbreviationNotFound):
            abbreviations.remove("Qwerty")

    def test_clear(self, abbreviations: AbbreviationTable):
        abbreviations.clear()
        assert len(abbreviations) == 0


class TestAminoAcidConversion:
    def test_one_to_three(self, abbreviations: AbbreviationTable):
        assert abbreviations.convert_amino_acid_symbol("G") == "Gly"
        assert abbreviations.convert_amino_acid_symbol("w") == "Trp"

    def test_three_to_one(self, abbreviations: AbbreviationTable):
        assert abbreviations.convert_amino_acid_symbol("Gly", one_to_three=False) == "G"
        assert abbreviations.convert_amino_acid_symbol("TRP", one_to_three=False) == "W"

    def test_unknown_symbol(self, abbreviations: AbbreviationTable):
        assert abbreviations.convert_amino_acid_symbol("B") == ""
        assert abbreviations.convert_amino_acid_symbol("Me", one_to_three=False) == ""

    def test_one_to_three_sequence(self, abbreviations: AbbreviationTable):
        assert abbreviations.one_to_three_letter_sequence("GAV") == "GlyAlaVal"

    def test_one_to_three_sequence_with_separator(self, abbreviations: AbbreviationTable):
        assert abbreviations.one_to_three_letter_sequence("GA", separator="-") == "Gly-Ala"

    def test_one_to_three_sequence_unknown_code(self, abbreviations: AbbreviationTable):
        assert abbreviations.one_to_three_letter_sequence("GB") == "GlyXxx"

    def test_three_to_one_sequence(self, abbreviations: AbbreviationTable):
        assert abbreviations.three_to_one_letter_sequence("Gly-Ala Val") == "GAV"

    def test_three_to_one_sequence_unknown_code(self, abbreviations: AbbreviationTable):
        assert abbreviations.three_to_one_letter_sequence("GlyAbc") == "GX"
