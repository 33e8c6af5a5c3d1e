"""ZIP container of a pass bundle."""

import io
import zipfile
from collections.abc import Iterable, Iterator


def create_archive(files: Iterable[tuple[str, bytes]]) -> bytes:
    """Create the .pkpass ZIP archive.

    Args:
        files: (path, content) pairs, written in the given order.

    Returns:
        ZIP archive as bytes.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for filename, content in files:
            zf.writestr(filename, content)
    return buffer.getvalue()


def read_archive(data: bytes) -> Iterator[tuple[str, bytes]]:
    """Iterate over the files of a ZIP archive.

    Args:
        data: ZIP archive as bytes.

    Yields:
        (path, content) pairs for every non-directory entry.
    """
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            yield info.filename, zf.read(info)
