"""molweight core exceptions."""


class AbbreviationNotFound(ValueError):
    """Exception raised when an abbreviation is not found in the abbreviation table."""


class ComputationFailure(ValueError):
    """Exception raised when an isotopic distribution computation cannot be completed."""

    def __init__(self, error):
        self.error = error
        super().__init__(error.message)


class ElementNotFound(ValueError):
    """Exception raised when an element symbol or atomic number is not found in the element table."""


class InvalidAbbreviation(ValueError):
    """Exception raised when an abbreviation definition is rejected by the abbreviation table."""

    def __init__(self, code: int, symbol: str):
        self.code = code
        self.symbol = symbol
        super().__init__(f"Invalid abbreviation `{symbol}` (message {code}).")


class InvalidIsotopeData(ValueError):
    """Exception raised when an isotope list contains invalid masses or abundances."""


class ParseFailure(ValueError):
    """Exception raised when a formula cannot be parsed."""

    def __init__(self, formula: str, error):
        self.formula = formula
        self.error = error
        super().__init__(f"Cannot parse `{formula}`: {error.message} at position {error.position}.")
