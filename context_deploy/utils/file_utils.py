# context_deploy/utils/file_utils.py
"""File operation utilities"""

import hashlib
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import aiofiles

from ..constants import DEFAULT_CHUNK_SIZE, ILLEGAL_FILENAME_CHARS


def sanitize_file_name(name: str) -> str:
    """
    Make a component item name safe to use as a file name

    Illegal path characters and whitespace become hyphens and the result is
    lower-cased. Leading dots are stripped so names cannot escape into
    hidden or parent paths.

    Args:
        name: Raw item name

    Returns:
        Sanitized file name stem
    """
    sanitized = ILLEGAL_FILENAME_CHARS.sub("-", str(name))
    sanitized = re.sub(r"\s+", "-", sanitized)
    sanitized = sanitized.lower().lstrip(".")
    return sanitized or "unnamed"


def calculate_file_checksum(file_path: Path,
                            algorithm: str = "sha256",
                            chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Calculate file checksum

    Args:
        file_path: Path to file
        algorithm: Hash algorithm (sha256, md5, sha1)
        chunk_size: Read chunk size

    Returns:
        Hex digest string
    """
    hash_func = hashlib.new(algorithm)

    with open(file_path, 'rb') as f:
        while chunk := f.read(chunk_size):
            hash_func.update(chunk)

    return hash_func.hexdigest()


async def read_text_async(file_path: Path) -> Optional[str]:
    """
    Read a text file, returning None if it does not exist

    Args:
        file_path: Path to file

    Returns:
        File content or None
    """
    try:
        async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
            return await f.read()
    except FileNotFoundError:
        return None


async def write_text_async(file_path: Path,
                           content: str,
                           streaming: bool = False,
                           chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """
    Write a text file atomically

    Content goes to a temporary file in the target directory which then
    replaces the destination. In streaming mode the payload is written in
    ``chunk_size`` pieces instead of one call.

    Args:
        file_path: Target file path
        content: Text to write
        streaming: Write in chunks
        chunk_size: Chunk size in bytes for streaming mode

    Returns:
        Number of bytes written
    """
    data = content.encode('utf-8')
    temp_fd, temp_path = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp")
    os.close(temp_fd)

    try:
        async with aiofiles.open(temp_path, 'wb') as f:
            if streaming:
                view = memoryview(data)
                for offset in range(0, len(data), chunk_size):
                    await f.write(view[offset:offset + chunk_size])
            else:
                await f.write(data)

        # mkstemp creates 0600 files; keep the destination's mode or use 0644
        try:
            mode = os.stat(file_path).st_mode & 0o777
        except FileNotFoundError:
            mode = 0o644
        os.chmod(temp_path, mode)

        # Atomic rename
        os.replace(temp_path, file_path)

    except BaseException:
        # Clean up temp file on error
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

    return len(data)


async def copy_file_async(src: Path,
                          dst: Path,
                          chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Copy a file in chunks and return the SHA-256 of what was copied

    Args:
        src: Source path
        dst: Destination path
        chunk_size: Chunk size in bytes

    Returns:
        Hex digest of the copied bytes
    """
    hash_func = hashlib.sha256()
    dst.parent.mkdir(parents=True, exist_ok=True)

    async with aiofiles.open(src, 'rb') as fin:
        async with aiofiles.open(dst, 'wb') as fout:
            while True:
                chunk = await fin.read(chunk_size)
                if not chunk:
                    break
                hash_func.update(chunk)
                await fout.write(chunk)

    return hash_func.hexdigest()
