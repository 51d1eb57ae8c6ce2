import os
import tempfile
from pathlib import Path
from typing import Union


def atomic_write_text(file_path: Union[str, Path], text: str, encoding: str = "utf-8") -> None:
    """
    Replace ``file_path`` with ``text`` so readers see the old or the new
    content, never a partial write.

    The data goes to a temp file in the same directory, is fsynced, then
    renamed over the target. Missing parent directories are created.

    Raises:
        OSError: If any step fails; the temp file is removed and the target is untouched
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create a unique temp file in the same directory
    temp_file_handle, temp_file_path = tempfile.mkstemp(
        prefix=f".{file_path.stem}_",
        suffix=".tmp",
        dir=str(file_path.parent),
    )

    try:
        with os.fdopen(temp_file_handle, "w", encoding=encoding) as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())  # Flush all buffers to disk

        # mkstemp creates 0600 files
        os.chmod(temp_file_path, 0o644)

        # Atomic rename operation
        os.replace(temp_file_path, file_path)

    except BaseException:
        # Clean up the temp file if something goes wrong
        if os.path.exists(temp_file_path):
            os.unlink(temp_file_path)
        raise
