# CalMorph Conversion
# Converts sequential microscope TIFF frames into genotype-grouped tiles for CalMorph

from .pipeline import Pipeline
from .config import Config, ConversionSettings

__version__ = "0.1.0"
__all__ = ["Pipeline", "Config", "ConversionSettings"]
