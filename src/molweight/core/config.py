"""Configuration models for formula parsing and isotope computations."""

import pydantic

from .enums import AbbreviationMode, CaseConversionMode, StdDevMode

DEFAULT_CHARGE_CARRIER_MASS_AVERAGE = 1.00739
"""Default charge carrier mass used in average mass mode."""

DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC = 1.00727649
"""Default charge carrier mass used in isotopic and integer mass modes. Also used as fallback proton mass."""


class FormulaOptions(pydantic.BaseModel):
    """Store formula parsing and formatting options."""

    abbreviation_mode: AbbreviationMode = AbbreviationMode.NORMAL_PLUS_AMINO_ACIDS
    """Abbreviations recognized while parsing formulas."""

    brackets_as_parentheses: bool = True
    """If ``True``, square brackets are treated as parentheses."""

    case_conversion: CaseConversionMode = CaseConversionMode.CONVERT_CASE_UP
    """Case handling used while matching symbols."""

    decimal_separator: str = pydantic.Field(default=".", min_length=1, max_length=1)
    """Decimal point symbol used in formula numbers."""

    std_dev_mode: StdDevMode = StdDevMode.DECIMAL
    """Display mode for masses with standard deviation."""

    model_config = pydantic.ConfigDict(validate_assignment=True)

    @pydantic.field_validator("decimal_separator")
    @classmethod
    def check_decimal_separator(cls, value: str) -> str:
        if value.isalnum() or value in "()[]{}^>-+_~":
            raise ValueError(f"`{value}` cannot be used as decimal separator.")
        return value


class IsotopeOptions(pydantic.BaseModel):
    """Store limits and output settings for isotopic distribution computations."""

    max_combinations: pydantic.PositiveInt = 10_000_000
    """Maximum number of isotope combinations allowed for a single element."""

    min_abundance: float = pydantic.Field(default=1e-6, ge=0.0, lt=1.0)
    """Abundances below this value are trimmed from the per-element and whole-molecule distributions."""

    ratio_method_cutoff: float = pydantic.Field(default=1e-5, ge=0.0, lt=1.0)
    """Abundance threshold used to switch between the log-domain method and the ratio method."""

    normalization_scale: pydantic.PositiveFloat = 100.0
    """Abundance assigned to the tallest peak in the spectrum."""

    add_proton_charge_carrier: bool = True
    """If ``True``, m/z values are computed by adding charge carriers. Otherwise, masses are divided by the charge."""

    progress_interval: pydantic.PositiveInt = 10
    """Number of combinations computed between progress reports."""

    model_config = pydantic.ConfigDict(frozen=True)


class ProfileOptions(pydantic.BaseModel):
    """Store settings used to convert stick spectra into Gaussian profile spectra."""

    resolution: pydantic.PositiveInt = 5000
    """The instrument resolution, i.e. the ratio between `resolution_mass` and the peak width at half height."""

    resolution_mass: pydantic.PositiveFloat = 1000.0
    """The m/z at which the resolution applies."""

    quality_factor: int = pydantic.Field(default=50, ge=1, le=75)
    """Number of points used to sample the width at half height of each peak."""

    fill_gaps: bool = True
    """If ``True``, points are added so that the distance between consecutive points is at most 1 % of the m/z range."""

    max_points: pydantic.PositiveInt = 1_000_000
    """Maximum number of points spanned by the m/z range of the spectrum."""

    model_config = pydantic.ConfigDict(frozen=True)
