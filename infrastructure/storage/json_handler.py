"""JSON writer for run report files."""

import json
import logging
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, timedelta
from enum import Enum

from .file_storage import FileStorage


class JSONHandler:
    """Writes JSON documents through FileStorage."""

    def __init__(self, file_storage: Optional[FileStorage] = None):
        self.file_storage = file_storage or FileStorage()
        self.logger = logging.getLogger(__name__)

    def write_json(
        self,
        file_path: str,
        data: Union[Dict[str, Any], List[Any]],
        indent: Optional[int] = 2,
        sort_keys: bool = False,
        encoding: str = 'utf-8'
    ) -> str:
        """Write data to JSON file and return the written path."""
        try:
            json_content = json.dumps(
                data,
                indent=indent,
                ensure_ascii=False,
                sort_keys=sort_keys,
                default=self._json_serializer
            )

            path = self.file_storage.write_file(file_path, json_content, encoding=encoding)

            self.logger.info(f"JSON file written: {path}")
            return path

        except Exception as e:
            self.logger.error(f"Failed to write JSON file {file_path}: {str(e)}")
            raise

    @staticmethod
    def _json_serializer(obj: Any) -> Any:
        """Serialize values json does not handle natively."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, timedelta):
            return obj.total_seconds()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, tuple)):
            return list(obj)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
