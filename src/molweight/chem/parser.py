"""Formula parser.

Formulas are scanned from left to right. Symbols are resolved against a
:py:class:`~molweight.chem.symbols.SymbolTable` using greedy longest match. Parenthesized groups and
abbreviations are evaluated recursively using an immutable :py:class:`ParseContext`, while atom counts,
charge and uncertainties are collected by a call-local accumulator. The first error found stops the
parsing and is returned as a :py:class:`~molweight.core.models.ParseError`.

"""

from __future__ import annotations

import math
from logging import getLogger
from typing import NoReturn, assert_never

import pydantic

from ..core import messages
from ..core.config import FormulaOptions
from ..core.enums import CaseConversionMode, SymbolKind
from ..core.exceptions import ParseFailure
from ..core.messages import lookup_caution, lookup_message
from ..core.models import ElementComposition, ElementCount, ElementDefinition, ExplicitIsotope, ParseError, ParseResult
from .abbreviations import AbbreviationTable
from .composition import to_empirical_formula
from .elements import HYDROGEN, ElementTable, is_chain_forming, is_hydride_partner
from .symbols import SymbolTable

logger = getLogger(__name__)

SUBTRACTION_SYMBOL = ">"
COUNT_TOLERANCE = 1e-9


class ParseContext(pydantic.BaseModel):
    """Multipliers and state inherited by a formula segment from the enclosing segments."""

    offset: int = 0
    """Position of the segment first character in the parsed text."""

    paren_multiplier: float = 1.0
    """Product of the multipliers of the enclosing parentheses and abbreviations."""

    bracket_multiplier: float = 1.0
    """Multiplier of the enclosing bracket scope."""

    dash_multiplier: float = 1.0
    """Leading coefficient in effect when the segment starts."""

    value_for_x: float = 1.0
    """Value used for ``x`` in bracket multipliers."""

    visited: frozenset[str] = frozenset()
    """Abbreviations being expanded. Used to detect circular references."""

    check_cautions: bool = True
    """Search caution statements while scanning. Disabled for abbreviation formulas."""

    model_config = pydantic.ConfigDict(frozen=True)


class _ElementAccumulator:
    def __init__(self, element: ElementDefinition):
        self.element = element
        self.count = 0.0
        self.isotopic_correction = 0.0
        self.explicit_isotopes: list[ExplicitIsotope] = list()


class _Accumulator:
    """Collect atom counts, charge and uncertainty of a single parse call."""

    def __init__(self):
        self.elements: dict[int, _ElementAccumulator] = dict()
        self.charge = 0.0
        self.std_dev_sum = 0.0
        self.cautions: list[str] = list()

    def get(self, element: ElementDefinition) -> _ElementAccumulator:
        if element.atomic_number not in self.elements:
            self.elements[element.atomic_number] = _ElementAccumulator(element)
        return self.elements[element.atomic_number]

    def add_atoms(self, element: ElementDefinition, count: float) -> None:
        self.get(element).count += count
        self.std_dev_sum += count * element.uncertainty**2

    def add_isotope(self, element: ElementDefinition, mass: float, count: float) -> None:
        item = self.get(element)
        item.count += count
        item.explicit_isotopes.append(ExplicitIsotope(mass=mass, count=count))
        item.isotopic_correction += (mass - element.mass) * count

    def add_caution(self, caution: str) -> None:
        if caution not in self.cautions:
            self.cautions.append(caution)

    def to_composition(self) -> ElementComposition:
        elements = dict()
        for atomic_number in sorted(self.elements):
            item = self.elements[atomic_number]
            elements[atomic_number] = ElementCount(
                atomic_number=atomic_number,
                symbol=item.element.symbol,
                count=max(item.count, 0.0),
                isotopic_correction=item.isotopic_correction,
                explicit_isotopes=tuple(item.explicit_isotopes),
            )
        return ElementComposition(elements=elements)


class FormulaParser:
    """Convert formula text into an elemental composition.

    The parser does not store state between calls. The tables must not be modified while a
    formula is being parsed.

    :param elements: the element table
    :param abbreviations: the abbreviation table
    :param symbols: symbol table built from `elements` and `abbreviations`
    :param options: the formula parsing options

    """

    def __init__(
        self,
        elements: ElementTable,
        abbreviations: AbbreviationTable,
        symbols: SymbolTable,
        options: FormulaOptions | None = None,
    ):
        self.elements = elements
        self.abbreviations = abbreviations
        self.symbols = symbols
        self.options = options or FormulaOptions()

    def parse(self, formula: str, expand_abbreviations: bool = False, value_for_x: float = 1.0) -> ParseResult:
        """Parse a formula.

        :param formula: the formula text
        :param expand_abbreviations: if ``True``, abbreviations are replaced by their formulas in the
            normalized formula text.
        :param value_for_x: value assigned to ``x`` in bracket multipliers, e.g. ``[xH2O]``.
        :return: the parse result. If the formula is invalid, the result contains the first error found.

        """
        acc = _Accumulator()
        context = ParseContext(value_for_x=value_for_x)
        try:
            normalized, _ = self._parse_segment(formula, context, acc, expand_abbreviations)
        except ParseFailure as e:
            logger.debug(f"Failed to parse `{formula}`: {e.error.message} at position {e.error.position}.")
            return ParseResult(formula=formula, error=e.error, cautions=tuple(acc.cautions))

        composition = acc.to_composition()
        mass = 0.0
        for item in acc.elements.values():
            mass += item.element.mass * item.count + item.isotopic_correction

        result = ParseResult(
            formula=normalized,
            composition=composition,
            mass=mass,
            charge=acc.charge,
            std_dev=math.sqrt(acc.std_dev_sum),
            cautions=tuple(acc.cautions),
        )
        logger.debug(f"Parsed `{formula}` as `{normalized}` with mass {mass}.")
        return result

    def to_empirical_formula(self, formula: str) -> str:
        """Convert a formula to its empirical form.

        :raises ParseFailure: if the formula cannot be parsed

        """
        result = self.parse(formula)
        if result.error is not None:
            raise ParseFailure(formula, result.error)
        return to_empirical_formula(result.composition)

    def _fail(self, code: int, text: str, position: int, context: ParseContext) -> NoReturn:
        character = text[position] if 0 <= position < len(text) else ""
        error = ParseError(code=code, position=context.offset + position, character=character)
        raise ParseFailure(text, error)

    def _read_number(self, text: str, start: int, context: ParseContext) -> tuple[float | None, int]:
        """Read a number starting at `start`. Return ``None`` and zero length if there is no number."""
        separator = self.options.decimal_separator
        end = start
        while end < len(text) and ("0" <= text[end] <= "9" or text[end] == separator):
            end += 1
        token = text[start:end]
        if not token:
            return None, 0
        if token == separator:
            self._fail(messages.MISSING_NUMBER, text, start, context)
        if token.count(separator) > 1:
            self._fail(messages.MULTIPLE_DECIMAL_POINTS, text, start, context)
        return float(token.replace(separator, ".")), len(token)

    def _find_closing_parenthesis(self, text: str, start: int) -> int | None:
        level = 0
        openers = "({[" if self.options.brackets_as_parentheses else "({"
        closers = ")}]" if self.options.brackets_as_parentheses else ")}"
        for k in range(start, len(text)):
            if text[k] in openers:
                level += 1
            elif text[k] in closers:
                level -= 1
                if level == 0:
                    return k
        return None

    def _normalize_case(self, token: str) -> str:
        if self.options.case_conversion == CaseConversionMode.CONVERT_CASE_UP:
            return token[:1].upper() + token[1:]
        return token

    def _parse_segment(
        self, text: str, context: ParseContext, acc: _Accumulator, expand: bool
    ) -> tuple[str, int]:
        """Parse a formula segment.

        :return: the normalized segment text and the number of bare carbon and silicon atoms if
            there are more than one, used to correct the charge of the enclosing group.

        """
        if SUBTRACTION_SYMBOL in text:
            return self._parse_subtraction(text, context, acc, expand)

        exact_case = self.options.case_conversion == CaseConversionMode.EXACT_CASE
        separator = self.options.decimal_separator
        output: list[str] = list()

        dash_multiplier = context.dash_multiplier
        bracket_multiplier = context.bracket_multiplier
        dash_position = -1
        inside_brackets = False
        isotope_mass: float | None = None
        previous_element = 0
        chain_count = 0

        size = len(text)
        k = 0
        while k < size:
            start = k
            char = text[k] if exact_case else text[k].upper()
            if self.options.brackets_as_parentheses:
                char = {"[": "(", "]": ")"}.get(char, char)
            excerpt = char + text[k + 1 :]

            if context.check_cautions:
                caution = lookup_caution(excerpt)
                if caution is not None:
                    acc.add_caution(caution)

            if char in "({":
                if k + 1 < size and ("0" <= text[k + 1] <= "9" or text[k + 1] == separator):
                    self._fail(messages.MISPLACED_NUMBER, text, k, context)
                close = self._find_closing_parenthesis(text, k)
                if close is None:
                    self._fail(messages.MISSING_CLOSING_PARENTHESIS, text, k, context)
                number, length = self._read_number(text, close + 1, context)
                multiplier = 1.0 if number is None else number
                group_context = context.model_copy(
                    update={
                        "offset": context.offset + k + 1,
                        "paren_multiplier": context.paren_multiplier * multiplier,
                        "dash_multiplier": dash_multiplier,
                        "bracket_multiplier": bracket_multiplier,
                    }
                )
                inner, group_chain_count = self._parse_segment(text[k + 1 : close], group_context, acc, expand)
                k = close + 1 + length
                output.append(text[start] + inner + text[close:k])

                if group_chain_count > 0:
                    acc.charge -= 2 * multiplier
                    if multiplier > 1 and group_chain_count > 1:
                        acc.charge -= 2 * (multiplier - 1) * (group_chain_count - 1)
                previous_element = 0

            elif char in ")}":
                self._fail(messages.UNMATCHED_PARENTHESIS, text, k, context)

            elif char == "-":
                number, length = self._read_number(text, k + 1, context)
                if number is None:
                    dash_position = -1
                    dash_multiplier = context.dash_multiplier
                    k += 1
                elif number == 0.0:
                    self._fail(messages.ZERO_AFTER_ELEMENT_OR_DASH, text, k + 1, context)
                else:
                    dash_position = k + length
                    dash_multiplier = number * context.dash_multiplier
                    k += 1 + length
                output.append(text[start:k])
                previous_element = 0

            elif "0" <= char <= "9" or char in (separator, ".", ","):
                if k == 0:
                    number, length = self._read_number(text, 0, context)
                    if number is None:
                        k += 1
                    else:
                        dash_position = length - 1
                        dash_multiplier = number * context.dash_multiplier
                        k = length
                    output.append(text[start:k])
                elif "1" <= text[k - 1] <= "9":
                    self._fail(messages.NUMBER_TOO_LARGE, text, k, context)
                else:
                    self._fail(messages.MISPLACED_NUMBER, text, k, context)
                previous_element = 0

            elif char == "[":
                number, length = self._read_bracket_multiplier(text, k, context)
                if inside_brackets:
                    self._fail(messages.NESTED_BRACKETS, text, k, context)
                if number is None:
                    self._fail(messages.MISSING_NUMBER, text, k + 1, context)
                inside_brackets = True
                bracket_multiplier = number * context.bracket_multiplier
                k += 1 + length
                output.append(text[start:k])
                previous_element = 0

            elif char == "]":
                number, _ = self._read_number(text, k + 1, context)
                if number is not None:
                    self._fail(messages.NUMBER_AFTER_RIGHT_BRACKET, text, k + 1, context)
                if not inside_brackets:
                    self._fail(messages.UNMATCHED_BRACKET, text, k, context)
                if dash_position >= 0:
                    # a leading coefficient inside brackets ends with the bracket
                    dash_position = -1
                    dash_multiplier = 1.0
                inside_brackets = False
                bracket_multiplier = context.bracket_multiplier
                k += 1
                output.append(text[start:k])

            elif char.isascii() and (char.isalpha() or char in "+_"):
                entry = self.symbols.match(excerpt)
                if entry is None:
                    code = messages.X_OUTSIDE_BRACKET if char == "X" else messages.UNKNOWN_ELEMENT
                    self._fail(code, text, k, context)

                match entry.kind:
                    case SymbolKind.ELEMENT:
                        element = self.elements[entry.ref]
                        multiplier = context.paren_multiplier * bracket_multiplier * dash_multiplier
                        k, token, chain = self._parse_element(
                            text, k, element, multiplier, isotope_mass, previous_element, context, acc
                        )
                        chain_count = int(round(chain_count + chain))
                        isotope_mass = None
                        previous_element = element.atomic_number
                    case SymbolKind.ABBREVIATION:
                        if entry.ref in context.visited:
                            self._fail(messages.CIRCULAR_ABBREVIATION, text, k, context)
                        if isotope_mass is not None:
                            if char == "D" and text[k + 1 : k + 2] != "y":
                                self._fail(messages.ISOTOPE_ON_DEUTERIUM, text, k, context)
                            self._fail(messages.ISOTOPE_ON_ABBREVIATION, text, k, context)
                        k, token = self._parse_abbreviation(
                            text, k, str(entry.ref), dash_multiplier, bracket_multiplier, context, acc, expand
                        )
                        previous_element = 0
                    case _ as never:
                        assert_never(never)
                output.append(token)

            elif char == "^":
                number, length = self._read_number(text, k + 1, context)
                if number is None:
                    if text[k + 1 : k + 2] == "-":
                        self._fail(messages.NEGATIVE_ISOTOPE_MASS, text, k + 1, context)
                    self._fail(messages.MISSING_ISOTOPE_MASS, text, k + 1, context)
                following = text[k + 1 + length : k + 2 + length]
                if not (following.isascii() and following.isalpha()):
                    self._fail(messages.MISSING_ELEMENT_AFTER_ISOTOPE, text, k + 1 + length, context)
                isotope_mass = number
                k += 1 + length
                output.append(text[start:k])

            else:
                # other characters are ignored
                k += 1
                output.append(text[start:k])

        if size and dash_multiplier > 0 and dash_position == size - 1:
            self._fail(messages.MISSING_ELEMENT_AFTER_DASH, text, dash_position, context)

        if inside_brackets:
            self._fail(messages.MISSING_CLOSING_BRACKET, text, size, context)

        if chain_count > 1:
            acc.charge -= (chain_count - 1) * 2
        else:
            chain_count = 0
        return "".join(output), chain_count

    def _read_bracket_multiplier(self, text: str, k: int, context: ParseContext) -> tuple[float | None, int]:
        following = text[k + 1 : k + 2]
        if following.upper() != "X":
            return self._read_number(text, k + 1, context)
        if text[k + 2 : k + 3] == "e":
            return None, 0
        number, length = self._read_number(text, k + 2, context)
        if number is None:
            return context.value_for_x, 1
        return number, length + 1

    def _parse_element(
        self,
        text: str,
        k: int,
        element: ElementDefinition,
        multiplier: float,
        isotope_mass: float | None,
        previous_element: int,
        context: ParseContext,
        acc: _Accumulator,
    ) -> tuple[int, str, float]:
        """Add the atoms of an element token.

        :return: the position after the token, the normalized token and the number of bare carbon
            or silicon atoms added.

        """
        symbol_length = len(element.symbol)
        number, length = self._read_number(text, k + symbol_length, context)
        if number == 0.0:
            self._fail(messages.ZERO_AFTER_ELEMENT_OR_DASH, text, k + symbol_length, context)
        count = 1.0 if number is None else number
        atoms = count * multiplier
        chain = 0.0

        if isotope_mass is None:
            acc.add_atoms(element, atoms)
            if element.atomic_number == HYDROGEN and is_hydride_partner(previous_element):
                acc.charge -= atoms
            else:
                acc.charge += atoms * element.charge
            if is_chain_forming(element.atomic_number):
                chain = count
        else:
            self._check_isotope_mass(element, isotope_mass, acc)
            acc.add_isotope(element, isotope_mass, atoms)

        end = k + symbol_length + length
        return end, self._normalize_case(text[k:end]), chain

    def _check_isotope_mass(self, element: ElementDefinition, mass: float, acc: _Accumulator) -> None:
        z = element.atomic_number
        top = round(0.63 * z + 6)
        bottom = round(0.008 * z**2 - 0.4 * z - 6)
        difference = mass - 2 * z
        vs_average = lookup_message(messages.ISOTOPE_VS_AVERAGE)
        if difference >= top:
            msg = lookup_message(messages.ISOTOPE_MASS_TOO_LARGE)
            acc.add_caution(f"{msg}: {element.symbol} - {mass:g} {vs_average} {element.mass}")
        elif mass < z:
            msg = lookup_message(messages.ISOTOPE_MASS_IMPOSSIBLE)
            acc.add_caution(f"{msg}: {element.symbol} - {z} {lookup_message(messages.ISOTOPE_PROTONS)}")
        elif difference <= bottom:
            msg = lookup_message(messages.ISOTOPE_MASS_TOO_SMALL)
            acc.add_caution(f"{msg}: {element.symbol} - {mass:g} {vs_average} {element.mass}")

    def _parse_abbreviation(
        self,
        text: str,
        k: int,
        symbol: str,
        dash_multiplier: float,
        bracket_multiplier: float,
        context: ParseContext,
        acc: _Accumulator,
        expand: bool,
    ) -> tuple[int, str]:
        """Add the atoms of an abbreviation token.

        The abbreviation formula is parsed as a parenthesized group. The charge of the group is
        replaced by the abbreviation declared charge. Errors found in the abbreviation formula are
        reported at the position of the abbreviation token.

        :return: the position after the token and the normalized token.

        """
        abbreviation = self.abbreviations.get(symbol)
        symbol_length = len(abbreviation.symbol)
        number, length = self._read_number(text, k + symbol_length, context)
        count = 1.0 if number is None else number

        multiplier = count * context.paren_multiplier * bracket_multiplier * dash_multiplier
        charge = acc.charge + multiplier * abbreviation.charge
        abbreviation_context = context.model_copy(
            update={
                "offset": 0,
                "paren_multiplier": context.paren_multiplier * count,
                "dash_multiplier": dash_multiplier,
                "bracket_multiplier": bracket_multiplier,
                "visited": context.visited | {abbreviation.symbol},
                "check_cautions": False,
            }
        )
        try:
            self._parse_segment(abbreviation.formula, abbreviation_context, acc, False)
        except ParseFailure as e:
            error = ParseError(code=e.error.code, position=context.offset + k, character=text[k])
            raise ParseFailure(text, error) from e
        acc.charge = charge

        end = k + symbol_length + length
        if not expand:
            return end, self._normalize_case(text[k:end])

        replacement = abbreviation.formula
        if SUBTRACTION_SYMBOL in replacement:
            replacement = self.to_empirical_formula(replacement)
        if number is None:
            return end, self._normalize_case(replacement)
        return end, f"({replacement}){text[k + symbol_length : end]}"

    def _parse_subtraction(
        self, text: str, context: ParseContext, acc: _Accumulator, expand: bool
    ) -> tuple[str, int]:
        """Parse a formula with the form ``left>right`` and remove the atoms of the right side from the left side."""
        split = text.index(SUBTRACTION_SYMBOL)
        left, _ = self._parse_segment(text[:split], context, acc, expand)

        removed_acc = _Accumulator()
        right_context = context.model_copy(update={"offset": context.offset + split + 1})
        right, _ = self._parse_segment(text[split + 1 :], right_context, removed_acc, expand)

        for removed in removed_acc.elements.values():
            kept = acc.get(removed.element)
            mass = removed.element.mass
            kept_mass = mass * kept.count + kept.isotopic_correction
            removed_mass = mass * removed.count + removed.isotopic_correction
            if kept_mass + COUNT_TOLERANCE < removed_mass or kept.count + COUNT_TOLERANCE < removed.count:
                self._fail(messages.INVALID_SUBTRACTION, text, split, context)
            kept.count -= removed.count
            kept.isotopic_correction -= removed.isotopic_correction
            kept.explicit_isotopes = _subtract_isotopes(kept.explicit_isotopes, removed.explicit_isotopes)

        acc.charge -= removed_acc.charge
        for caution in removed_acc.cautions:
            acc.add_caution(caution)
        return f"{left}{SUBTRACTION_SYMBOL}{right}", 0


def _subtract_isotopes(kept: list[ExplicitIsotope], removed: list[ExplicitIsotope]) -> list[ExplicitIsotope]:
    """Compute the net explicit isotope counts.

    Removed isotopes missing from `kept` are stored with negative counts, so that the result is
    consistent with the element count and isotopic correction.

    """
    remaining: dict[float, float] = dict()
    for isotope in kept:
        remaining[isotope.mass] = remaining.get(isotope.mass, 0.0) + isotope.count
    for isotope in removed:
        remaining[isotope.mass] = remaining.get(isotope.mass, 0.0) - isotope.count
    return [ExplicitIsotope(mass=m, count=c) for m, c in remaining.items() if abs(c) > COUNT_TOLERANCE]
