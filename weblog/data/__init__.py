from .base import WebLogData
from .sql import SqlWebLogData

__all__ = ["WebLogData", "SqlWebLogData"]
