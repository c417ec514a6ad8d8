from .errors import (
    ConversionError,
    ConfigurationError,
    TaskError,
)
from .plate import PlateLayout, plate_layout, scan_ordinal, scan_ordinal_grid, well_name
from .genotypes import GenotypeTable
from .naming import FrameFilenameCodec, first_sequence_number, infer_digit_width
from .contrast import ContrastParams, resolve_contrast, resolve_channel_contrasts
from .profiles import MicroscopeProfile, get_profile

__all__ = [
    "ConversionError",
    "ConfigurationError",
    "TaskError",
    "PlateLayout",
    "plate_layout",
    "scan_ordinal",
    "scan_ordinal_grid",
    "well_name",
    "GenotypeTable",
    "FrameFilenameCodec",
    "first_sequence_number",
    "infer_digit_width",
    "ContrastParams",
    "resolve_contrast",
    "resolve_channel_contrasts",
    "MicroscopeProfile",
    "get_profile",
]
