from .config import Config
from .settings import ConversionSettings

__all__ = ["Config", "ConversionSettings"]
