"""JSON export of directory payloads.

Why JSON:
- Interoperability with other tooling and pipelines.
- Dumps mirror the API's own field names, so they can be diffed against raw
  responses.
"""

from __future__ import annotations

import json
import re
import shutil
from pathlib import Path

from core.domain.models import WireModel
from core.errors import ConfigurationError, SinkError

# ? * : " < > \ / | and the shell-hostile &
_ILLEGAL_CHARS_RE = re.compile(r'[?*:"<>\\/|&]')
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f]")


def sanitize_filename(name: str) -> str:
    """Make an assembled file name safe on every common filesystem.

    Illegal characters become ``-``; ASCII control characters are dropped.
    Apply it to the whole name, not to its parts.
    """

    return _CONTROL_CHARS_RE.sub("", _ILLEGAL_CHARS_RE.sub("-", name))


def member_filename(item_id: int, name: str, *, prefix: str = "members") -> str:
    return sanitize_filename(f"{prefix}-{item_id}-{name}.json")


def prepare_output_dir(path: Path, *, overwrite: bool) -> Path:
    """Create a fresh output directory.

    An existing path is an error unless ``overwrite`` is set, in which case the
    file or directory tree is removed first.
    """

    if path.exists() or path.is_symlink():
        if not overwrite:
            raise ConfigurationError(
                f"Output path '{path}' already exists, pass -y/--overwrite to replace it"
            )
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as exc:
            raise SinkError(f"Failed to delete ({exc.strerror or exc})", path=path) from exc

    try:
        path.mkdir(parents=True)
    except OSError as exc:
        raise SinkError(f"Failed to create directory ({exc.strerror or exc})", path=path) from exc
    return path


class JsonSink:
    """Writes payloads below one output root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def ensure_dir(self, name: str) -> Path:
        target = self.root / name
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SinkError(f"Failed to create directory ({exc.strerror})", path=target) from exc
        return target

    def write_json(self, relative_name: str, payload: WireModel) -> Path:
        """Write ``payload`` as UTF-8 pretty-printed JSON and return its path."""

        target = self.root / relative_name
        try:
            text = json.dumps(payload.to_wire(), ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as exc:
            raise SinkError(f"Failed to serialize {type(payload).__name__}", path=target) from exc
        return self._write(target, text + "\n")

    def write_text(self, relative_name: str, text: str) -> Path:
        return self._write(self.root / relative_name, text)

    def _write(self, target: Path, text: str) -> Path:
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise SinkError(f"Failed to write ({exc.strerror or exc})", path=target) from exc
        return target
