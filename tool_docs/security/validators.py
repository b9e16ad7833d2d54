"""Security validators for CLI input."""

import re
from pathlib import Path
from typing import Tuple, Optional


class PathValidator:
    """Validates filesystem paths and name tokens before they are used."""

    @staticmethod
    def validate_output_dir(path_str: str) -> Tuple[bool, str, Optional[Path]]:
        """
        Validate the output directory argument.

        Prevents:
        - Empty paths
        - Parent-directory traversal (``..`` components)
        - Pointing at an existing regular file

        Args:
            path_str: Output directory from the CLI or environment

        Returns:
            Tuple of (is_valid, error_message, resolved_path)
        """
        if not path_str or not path_str.strip():
            return False, "Output directory is empty", None

        if len(path_str) > 1024:
            return False, "Output directory path too long", None

        path = Path(path_str)
        if ".." in path.parts:
            return False, "Path traversal detected", None

        if path.exists() and not path.is_dir():
            return False, f"Output path is not a directory: {path_str}", None

        return True, "", path.resolve()

    @staticmethod
    def validate_area(area: str) -> Tuple[bool, str, Optional[str]]:
        """
        Validate a family/area token used to build a file name.

        Args:
            area: Area token such as ``keyvault``

        Returns:
            Tuple of (is_valid, error_message, sanitized_area)
        """
        if not area:
            return False, "Area is empty", None

        if len(area) > 100:
            return False, "Area name too long", None

        if not re.match(r'^[\w\-]+$', area):
            return False, "Invalid characters in area", None

        return True, "", area.lower()
