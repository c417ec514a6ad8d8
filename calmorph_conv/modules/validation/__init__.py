from .processor import OutputValidator

__all__ = ["OutputValidator"]
