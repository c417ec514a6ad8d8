from .conversion import CancellationToken, ConversionScheduler, ImageMagickEngine
from .validation import OutputValidator

__all__ = [
    "CancellationToken",
    "ConversionScheduler",
    "ImageMagickEngine",
    "OutputValidator",
]
