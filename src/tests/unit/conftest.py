import pytest

from molweight.chem.abbreviations import AbbreviationTable
from molweight.chem.calculator import MolecularWeightCalculator
from molweight.chem.elements import ElementTable
from molweight.chem.parser import FormulaParser
from molweight.chem.symbols import SymbolTable
from molweight.core.config import FormulaOptions
from molweight.core.enums import ElementMassMode


@pytest.fixture
def elements():
    return ElementTable()


@pytest.fixture
def isotopic_elements():
    return ElementTable(ElementMassMode.ISOTOPIC)


@pytest.fixture
def abbreviations():
    return AbbreviationTable()


@pytest.fixture
def options():
    return FormulaOptions()


@pytest.fixture
def parser(elements, abbreviations, options):
    symbols = SymbolTable.build(elements, abbreviations, options.abbreviation_mode)
    return FormulaParser(elements, abbreviations, symbols, options)


@pytest.fixture
def calculator():
    return MolecularWeightCalculator()


@pytest.fixture
def isotopic_calculator():
    return MolecularWeightCalculator(ElementMassMode.ISOTOPIC)
