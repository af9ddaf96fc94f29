from .parameters import ParametersEntity
from .result import ResultEntity

__all__ = ["ParametersEntity", "ResultEntity"]
