import csv
import io
import json
import logging
from typing import Any

from client.domain.compliance import ExportedFile, ExportFormat


class ComplianceService:
    """Stand-in exporter turning plain records into a JSON or CSV document"""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)

    async def initialize(self) -> None:
        self._logger.info("Initializing compliance service")

    async def export_records(
        self, data_type: str, records: list[dict[str, Any]], export_format: ExportFormat
    ) -> ExportedFile:
        export_format = ExportFormat(export_format)
        self._logger.debug(f"Exporting {len(records)} {data_type} in {export_format.value} format")

        if export_format == ExportFormat.JSON:
            data = json.dumps(records, sort_keys=True, default=str)
        else:
            columns = sorted({key for record in records for key in record})
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=columns)
            writer.writeheader()
            writer.writerows(records)
            data = buffer.getvalue()

        return ExportedFile(data=data, filename=f"{data_type}_export.{export_format.value}")
