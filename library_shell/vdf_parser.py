"""
Lightweight parser for Steam manifest files.

Parses Steam's VDF (Valve Data Format) files used in:
- libraryfolders.vdf: Steam library locations
- appmanifest_*.acf: Installed game metadata
"""

import re
from pathlib import Path
from typing import Any, Dict, Optional

from .logger import setup_logger

logger = setup_logger()

_MANIFEST_NAME = re.compile(r"appmanifest_(\d+)\.acf", re.IGNORECASE)


class VDFParser:
    """
    VDF format is a simple key-value structure with nested blocks:
    "key"    "value"
    "block"
    {
        "nested_key"    "nested_value"
    }
    """

    # Pre-compiled regex patterns for O(1) matching per line
    _KV_PATTERN = re.compile(r'"([^"]+)"\s+"([^"]*)"')
    _BLOCK_START = re.compile(r'"([^"]+)"\s*$')

    @classmethod
    def parse_file_sync(cls, file_path: Path, encoding: str = "utf-8") -> Dict[str, Any]:
        try:
            content = Path(file_path).read_text(encoding=encoding, errors="ignore")
        except OSError as e:
            logger.debug(f"Error reading VDF file {file_path}: {e}")
            return {}
        return cls._parse_vdf_content(content)

    @classmethod
    def _parse_vdf_content(cls, content: str) -> Dict[str, Any]:
        """
        Parse VDF content string into nested dictionary.

        Uses a simple stack-based parser for nested blocks.
        """
        result = {}
        stack = [result]
        current_key = None

        for line in content.splitlines():
            line = line.strip()

            if not line or line.startswith("//"):
                continue

            kv_match = cls._KV_PATTERN.match(line)
            if kv_match:
                key, value = kv_match.groups()
                stack[-1][key] = value
                continue

            block_match = cls._BLOCK_START.match(line)
            if block_match:
                current_key = block_match.group(1)
                continue

            if line == "{" and current_key:
                new_block = {}
                stack[-1][current_key] = new_block
                stack.append(new_block)
                current_key = None
                continue

            if line == "}":
                if len(stack) > 1:
                    stack.pop()
                continue

        return result

    @classmethod
    def read_installdir(cls, acf_path: Path) -> Optional[str]:
        data = cls.parse_file_sync(acf_path)
        app_state = data.get("AppState", data)
        for key, value in app_state.items():
            if key.lower() == "installdir" and isinstance(value, str):
                return value
        return None

    @staticmethod
    def app_id_from_manifest_name(acf_path: Path) -> Optional[str]:
        """appmanifest_271590.acf -> '271590'"""
        match = _MANIFEST_NAME.fullmatch(Path(acf_path).name)
        return match.group(1) if match else None

    @classmethod
    def find_app_id_for_folder(cls, steamapps_dir: Path, folder_name: str) -> Optional[str]:
        """
        Find the app id whose manifest ``installdir`` equals ``folder_name``
        (the literal folder name, compared case-insensitively).
        """
        try:
            manifests = sorted(Path(steamapps_dir).glob("appmanifest_*.acf"))
        except OSError as e:
            logger.debug(f"Cannot list manifests in {steamapps_dir}: {e}")
            return None

        wanted = folder_name.lower()
        for manifest in manifests:
            install_dir = cls.read_installdir(manifest)
            if install_dir is not None and install_dir.lower() == wanted:
                app_id = cls.app_id_from_manifest_name(manifest)
                if app_id:
                    logger.debug(f"Found store id {app_id} in {manifest.name} for {folder_name}")
                    return app_id
        return None
