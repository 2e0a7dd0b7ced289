"""Crash-safe file replacement."""

import logging
import os
import stat
import tempfile
from pathlib import Path

from .exceptions import ConfigFileError

logger = logging.getLogger(__name__)


def atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` atomically using a temp file + fsync + rename.

    - Parent directory is created if missing
    - Data is written to a temporary file in the same directory, so the
      final rename never crosses filesystems
    - The temp file is fsync'd, then renamed over the target with os.replace
    - On any failure the target is left untouched and the temp file removed

    Args:
        path: Target file path
        data: Complete new file content

    Raises:
        ConfigFileError: If any filesystem step fails
    """
    path = Path(path)
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "wb",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_path = Path(f.name)
            if path.exists():
                # NamedTemporaryFile is 0600; keep the target's mode
                os.chmod(tmp_path, stat.S_IMODE(path.stat().st_mode))
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(str(tmp_path), str(path))
        tmp_path = None
    except OSError as e:
        raise ConfigFileError(f"Failed to write configuration to {path}: {e}") from e
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove temporary file {tmp_path}: {e}")
