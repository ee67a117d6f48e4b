"""File storage handler for report files."""

import logging
from typing import Optional
from pathlib import Path


class FileStorage:
    """File storage handler rooted at a base directory."""

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path) if base_path else Path.cwd()
        self.logger = logging.getLogger(__name__)

    def _resolve(self, file_path: str) -> Path:
        path = Path(file_path)
        return path if path.is_absolute() else self.base_path / path

    def write_file(self, file_path: str, content: str, encoding: str = 'utf-8') -> str:
        """Write content to a file and return its path."""
        try:
            path = self._resolve(file_path)
            path.parent.mkdir(parents=True, exist_ok=True)

            with open(path, 'w', encoding=encoding) as f:
                f.write(content)

            self.logger.debug(f"File written: {path}")
            return str(path)

        except Exception as e:
            self.logger.error(f"Failed to write file {file_path}: {str(e)}")
            raise
