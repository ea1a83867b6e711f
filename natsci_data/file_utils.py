"""
Filesystem helpers: hashing, atomic writes, directory creation.
"""

import hashlib
import json
import os
import tempfile
from datetime import datetime

from natsci_data import config
from natsci_data.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)


def md5_file(path, chunk_size=config.CHUNK_SIZE):
    """Hex MD5 digest of a file's contents, read in chunks."""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def ensure_directory(dir_path):
    """Create *dir_path* (and parents) if missing; safe under concurrency."""
    if not os.path.isdir(dir_path):
        os.makedirs(dir_path, exist_ok=True)
        log.info("Created directory: %s", dir_path)
    return dir_path


def path_problem(part) -> str | None:
    """Return why *part* is not a usable relative path component, or None."""
    if not part or not str(part).strip():
        return "path is empty"
    part = str(part)
    if os.path.isabs(part):
        return f"path {part!r} must be relative"
    bad = sorted(set(part) & config.ILLEGAL_PATH_CHARS)
    if bad:
        return f"path {part!r} contains illegal characters {bad}"
    if ".." in part.replace("\\", "/").split("/"):
        return f"path {part!r} must not contain '..'"
    return None


def filename_problem(name) -> str | None:
    """Like path_problem(), but *name* must also be a bare file name."""
    problem = path_problem(name)
    if problem:
        return problem
    if "/" in name or "\\" in name:
        return f"file name {name!r} must not contain path separators"
    return None


def atomic_write_text(path, text, encoding="utf-8"):
    """Write *text* to *path* via a temp file in the same directory + rename.

    Readers see either the previous file or the complete new one.
    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(
        dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return path


def atomic_write_json(path, data):
    return atomic_write_text(path, json.dumps(data, indent=2) + "\n")


def file_info(path):
    """Size (KB, 2 decimals), modification time and MD5 of a file."""
    stat = os.stat(path)
    return {
        "size_kb": round(stat.st_size / 1024, 2),
        "modified": datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M:%S"),
        "md5": md5_file(path),
    }
