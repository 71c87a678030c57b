"""Settings loaded from ``~/.mermaidpad.cfg`` with environment overrides."""

from __future__ import annotations

import json
import logging
import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".mermaidpad.cfg"
DEFAULT_EXPORT_SIZE = (1600, 900)
EXPORT_BACKGROUND = "#0b1020"
PNG_FILENAME = "diagram.png"
SVG_FILENAME = "diagram.svg"


def _default_download_dir() -> Path:
    downloads = Path.home() / "Downloads"
    return downloads if downloads.is_dir() else Path.home()


@dataclass(frozen=True)
class Settings:
    mmdc_command: tuple[str, ...] = ("mmdc",)
    compile_timeout: float = 20.0
    export_timeout_ms: int = 5000
    export_background: str = EXPORT_BACKGROUND
    download_dir: Path = field(default_factory=_default_download_dir)
    theme: str = "default"
    log_level: str = "INFO"


def config_file_path() -> Path:
    return Path.home() / CONFIG_FILE_NAME


def _read_config_file(path: Path) -> dict:
    """Return the JSON object stored at ``path``, or an empty dict."""
    try:
        if not path.is_file():
            return {}
        raw = path.read_text(encoding="utf-8").strip()
        if not raw:
            return {}
        data = json.loads(raw)
    except (OSError, ValueError) as exc:
        # A broken config file should never stop the viewer from starting.
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", path)
        return {}
    return data


def _apply(settings: Settings, values: dict) -> Settings:
    updates: dict = {}
    try:
        if values.get("mmdc"):
            command = values["mmdc"]
            updates["mmdc_command"] = tuple(shlex.split(command) if isinstance(command, str) else command)
        if values.get("compile_timeout") not in (None, ""):
            updates["compile_timeout"] = float(values["compile_timeout"])
        if values.get("export_timeout_ms") not in (None, ""):
            updates["export_timeout_ms"] = int(values["export_timeout_ms"])
        if values.get("export_background"):
            updates["export_background"] = str(values["export_background"])
        if values.get("download_dir"):
            updates["download_dir"] = Path(str(values["download_dir"])).expanduser()
        if values.get("theme"):
            updates["theme"] = str(values["theme"])
        if values.get("log_level"):
            updates["log_level"] = str(values["log_level"]).upper()
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring invalid setting: %s", exc)
        return settings
    return replace(settings, **updates)


def load_settings(path: Path | None = None, environ: dict[str, str] | None = None) -> Settings:
    """Build settings from defaults, then the config file, then the environment."""
    env = os.environ if environ is None else environ
    settings = _apply(Settings(), _read_config_file(path or config_file_path()))
    overrides = {
        "mmdc": env.get("MERMAIDPAD_MMDC", ""),
        "compile_timeout": env.get("MERMAIDPAD_COMPILE_TIMEOUT", ""),
        "export_timeout_ms": env.get("MERMAIDPAD_EXPORT_TIMEOUT_MS", ""),
        "download_dir": env.get("MERMAIDPAD_DOWNLOAD_DIR", ""),
        "theme": env.get("MERMAIDPAD_THEME", ""),
        "log_level": env.get("MERMAIDPAD_LOG_LEVEL", ""),
    }
    return _apply(settings, overrides)
