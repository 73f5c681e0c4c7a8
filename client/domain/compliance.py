from dataclasses import dataclass
from enum import Enum


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


@dataclass
class ExportedFile:
    data: str
    filename: str
