"""Message and caution catalogs.

Parser, table and isotope routines only report numeric message ids. Text rendering is done
with :py:func:`lookup_message`.

"""

from functools import cache

GENERIC_ERROR = 350

UNKNOWN_ELEMENT = 1
MISSING_CLOSING_PARENTHESIS = 3
UNMATCHED_PARENTHESIS = 4
ZERO_AFTER_ELEMENT_OR_DASH = 5
NUMBER_TOO_LARGE = 7
NUMBER_AFTER_RIGHT_BRACKET = 11
MISSING_NUMBER = 12
MISSING_CLOSING_BRACKET = 13
MISPLACED_NUMBER = 14
UNMATCHED_BRACKET = 15
NESTED_BRACKETS = 16
X_OUTSIDE_BRACKET = 18
MISSING_ISOTOPE_MASS = 20
MISSING_ELEMENT_AFTER_ISOTOPE = 22
NEGATIVE_ISOTOPE_MASS = 23
ISOTOPE_ON_ABBREVIATION = 24
MISSING_ELEMENT_AFTER_DASH = 25
ISOTOPE_ON_DEUTERIUM = 26
MULTIPLE_DECIMAL_POINTS = 27
CIRCULAR_ABBREVIATION = 28
INVALID_SUBTRACTION = 30
INVALID_ABBREVIATION = 32

ABBREVIATION_BLANK_FORMULA = 160
ABBREVIATION_TOO_LONG = 190
ABBREVIATION_EMPTY_SYMBOL = 192
ABBREVIATION_NOT_LETTERS = 194
ABBREVIATION_LIMIT_REACHED = 196

ISOTOPE_MASS_TOO_LARGE = 660
ISOTOPE_MASS_TOO_SMALL = 662
ISOTOPE_VS_AVERAGE = 665
ISOTOPE_MASS_IMPOSSIBLE = 670
ISOTOPE_PROTONS = 675

FRACTIONAL_ATOMS = 805
TOO_MANY_COMBINATIONS = 810
NEGATIVE_ATOMS = 815
NEGATIVE_CHARGE_STATE = 820
PROCESS_ABORTED = 940

_MESSAGES = {
    UNKNOWN_ELEMENT: "Unknown element",
    MISSING_CLOSING_PARENTHESIS: "Missing closing parentheses",
    UNMATCHED_PARENTHESIS: "Unmatched parentheses",
    ZERO_AFTER_ELEMENT_OR_DASH: "Cannot have a 0 directly after an element or dash (-)",
    NUMBER_TOO_LARGE: "Number too large",
    NUMBER_AFTER_RIGHT_BRACKET: (
        "Numbers should follow left brackets, not right brackets (unless 'treat brackets' as parentheses is on)"
    ),
    MISSING_NUMBER: "A number must be present after a bracket and/or after the decimal point",
    MISSING_CLOSING_BRACKET: "Missing closing bracket, ]",
    MISPLACED_NUMBER: "Misplaced number; should only be after an element, [, ), -, or caret (^)",
    UNMATCHED_BRACKET: "Unmatched bracket",
    NESTED_BRACKETS: (
        "Cannot handle nested brackets or brackets inside multiple hydrates "
        "(unless 'treat brackets as parentheses' is on)"
    ),
    X_OUTSIDE_BRACKET: "'x' only allowed after '['",
    MISSING_ISOTOPE_MASS: "There must be an isotopic mass number following the caret (^)",
    MISSING_ELEMENT_AFTER_ISOTOPE: "An element must be present after the isotopic mass after the caret (^)",
    NEGATIVE_ISOTOPE_MASS: "Negative isotopic masses are not allowed after the caret (^)",
    ISOTOPE_ON_ABBREVIATION: "Isotopic masses are not allowed for abbreviations",
    MISSING_ELEMENT_AFTER_DASH: "An element must be present after the leading coefficient of the dash",
    ISOTOPE_ON_DEUTERIUM: "Isotopic masses are not allowed for abbreviations; D is an abbreviation",
    MULTIPLE_DECIMAL_POINTS: "Numbers cannot contain more than one decimal point",
    CIRCULAR_ABBREVIATION: (
        "Circular abbreviation reference; can't have an abbreviation referencing a second abbreviation "
        "that depends upon the first one"
    ),
    INVALID_SUBTRACTION: (
        "Invalid formula subtraction; one or more atoms (or too many atoms) in the right-hand formula "
        "are missing (or less abundant) in the left-hand formula"
    ),
    INVALID_ABBREVIATION: "Cannot use an invalid abbreviation.",
    ABBREVIATION_BLANK_FORMULA: "Ignoring Abbreviation -- Invalid Formula",
    ABBREVIATION_TOO_LONG: "Ignoring Abbreviation; too long",
    ABBREVIATION_EMPTY_SYMBOL: "Ignoring Abbreviation; symbol length cannot be 0",
    ABBREVIATION_NOT_LETTERS: "Ignoring Abbreviation; symbol most only contain letters",
    ABBREVIATION_LIMIT_REACHED: "Ignoring Abbreviation; Too many abbreviations in memory",
    GENERIC_ERROR: "Error",
    ISOTOPE_MASS_TOO_LARGE: "Warning, isotopic mass is probably too large for element",
    ISOTOPE_MASS_TOO_SMALL: "Warning, isotopic mass is probably too small for element",
    ISOTOPE_VS_AVERAGE: "vs avg atomic wt of",
    ISOTOPE_MASS_IMPOSSIBLE: "Warning, isotopic mass is impossibly small for element",
    ISOTOPE_PROTONS: "protons",
    FRACTIONAL_ATOMS: "Cannot handle fractional numbers of atoms",
    TOO_MANY_COMBINATIONS: "Too many combinations necessary for prediction of isotopic distribution",
    NEGATIVE_ATOMS: "Cannot handle negative numbers of atoms",
    NEGATIVE_CHARGE_STATE: "Negative charge states are not supported",
    PROCESS_ABORTED: "Process aborted",
}

_CAUTIONS = {
    "Bi": "Bi means bismuth; BI means boron-iodine.",
    "Bk": "Bk means berkelium; BK means boron-potassium.",
    "Bu": "Bu means the butyl group; BU means boron-uranium.",
    "Cd": "Cd means cadmium; CD means carbon-deuterium.",
    "Cf": "Cf means californium; CF means carbon-fluorine.",
    "Co": "Co means cobalt; CO means carbon-oxygen.",
    "Cs": "Cs means cesium; CS means carbon-sulfur.",
    "Cu": "Cu means copper; CU means carbon-uranium.",
    "Dy": "Dy means dysprosium; DY means deuterium-yttrium.",
    "Hf": "Hf means hafnium; HF means hydrogen-fluorine.",
    "Ho": "Ho means holmium; HO means hydrogen-oxygen.",
    "In": "In means indium; IN means iodine-nitrogen.",
    "Nb": "Nb means niobium; NB means nitrogen-boron.",
    "Nd": "Nd means neodymium; ND means nitrogen-deuterium.",
    "Ni": "Ni means nickel; NI means nitrogen-iodine.",
    "No": "No means nobelium; NO means nitrogen-oxygen.",
    "Np": "Np means neptunium; NP means nitrogen-phosphorus.",
    "Os": "Os means osmium; OS means oxygen-sulfur.",
    "Pd": "Pd means palladium; PD means phosphorus-deuterium.",
    "Ph": "Ph means phenyl, PH means phosphorus-hydrogen.",
    "Pu": "Pu means plutonium; PU means phosphorus-uranium.",
    "Py": "Py means pyridine; PY means phosphorus-yttrium.",
    "Sb": "Sb means antimony; SB means sulfur-boron.",
    "Sc": "Sc means scandium; SC means sulfur-carbon.",
    "Si": "Si means silicon; SI means sulfur-iodine.",
    "Sn": "Sn means tin; SN means sulfur-nitrogen.",
    "TI": "TI means tritium-iodine, Ti means titanium.",
    "Yb": "Yb means ytterbium; YB means yttrium-boron.",
    "BPY": "BPY means boron-phosphorus-yttrium; Bpy means bipyridine.",
    "BPy": "BPy means boron-pyridine; Bpy means bipyridine.",
    "Bpy": "Bpy means bipyridine.",
    "Cys": "Cys means cysteine; CYS means carbon-yttrium-sulfur.",
    "His": "His means histidine; HIS means hydrogen-iodine-sulfur.",
    "Hoh": "HoH means holmium-hydrogen; HOH means hydrogen-oxygen-hydrogen (aka water).",
    "Hyp": "Hyp means hydroxyproline; HYP means hydrogen-yttrium-phosphorus.",
    "OAc": "OAc means oxygen-actinium; Oac means acetate.",
    "Oac": "Oac means acetate.",
    "Pro": "Pro means proline; PrO means praseodymium-oxygen.",
    "PrO": "Pro means proline; PrO means praseodymium-oxygen.",
    "Val": "Val means valine; VAl means vanadium-aluminum.",
    "VAl": "Val means valine; VAl means vanadium-aluminum.",
}

MAX_CAUTION_LENGTH = max(len(k) for k in _CAUTIONS)


@cache
def lookup_message(code: int) -> str:
    """Retrieve the text associated with a message id.

    :param code: the message id
    :return: the message text. If the id is not in the catalog, a generic error text with the id is returned.

    """
    if code in _MESSAGES:
        return _MESSAGES[code]
    return f"{_MESSAGES[GENERIC_ERROR]}: unknown message {code}"


def lookup_caution(excerpt: str) -> str | None:
    """Search the caution catalog using the shortest prefix of `excerpt` found in the catalog.

    :param excerpt: formula text starting at the current scan position
    :return: the caution statement or ``None`` if no prefix is in the catalog.

    """
    for length in range(1, MAX_CAUTION_LENGTH + 1):
        if length > len(excerpt):
            break
        caution = _CAUTIONS.get(excerpt[:length])
        if caution is not None:
            return caution
    return None


def list_caution_symbols() -> list[str]:
    """List the symbol combinations that trigger a caution statement."""
    return list(_CAUTIONS)
