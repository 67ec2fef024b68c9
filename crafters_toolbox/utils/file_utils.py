# crafters_toolbox/utils/file_utils.py
"""File operation utilities"""

import json
import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Any, List, Tuple, Union

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """
    Ensure directory exists

    Args:
        path: Directory path

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_non_empty_dir(path: Path) -> bool:
    """Check that path is a directory with at least one entry"""
    if not path.is_dir():
        return False
    return any(path.iterdir())


def remove_path(path: Path) -> bool:
    """
    Remove a file, symlink or directory tree

    Args:
        path: Path to remove

    Returns:
        True if something was removed, False if the path did not exist

    Raises:
        OSError: If removal failed for any reason other than absence
    """
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
        else:
            return False
    except FileNotFoundError:
        return False
    return True


def copy_path(src: Path, dst: Path) -> Path:
    """
    Copy a file or directory tree to ``dst``, replacing what is there

    Args:
        src: Source file or directory
        dst: Destination path (the copy itself, not its parent)

    Returns:
        Destination path
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    if dst.exists() or dst.is_symlink():
        remove_path(dst)

    if src.is_dir():
        shutil.copytree(src, dst, symlinks=True)
    else:
        shutil.copy2(src, dst)
    return dst


def merge_directory(src: Path, dst: Path) -> List[Path]:
    """
    Merge the entries of ``src`` into ``dst``

    Existing entries in ``dst`` with the same name are replaced; other
    entries are left alone.

    Args:
        src: Source directory
        dst: Destination directory

    Returns:
        Top-level destination paths written
    """
    dst.mkdir(parents=True, exist_ok=True)
    written = []
    for entry in sorted(src.iterdir()):
        target = dst / entry.name
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
        else:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            shutil.copy2(entry, target)
        written.append(target)
    return written


def _archive_root(names: List[str]) -> str:
    """Single directory every member lives under, ``""`` if there is none"""
    roots = set()
    for name in names:
        first, sep, _ = name.partition("/")
        if not sep:
            return ""
        roots.add(first)
    if len(roots) != 1:
        return ""
    return roots.pop() + "/"


def _archive_members(archive: zipfile.ZipFile, strip_root: bool) -> List[Tuple[zipfile.ZipInfo, str]]:
    members = [(info, info.filename.replace("\\", "/")) for info in archive.infolist()]
    prefix = _archive_root([name for _, name in members]) if strip_root else ""
    stripped = []
    for info, name in members:
        relative = name[len(prefix):]
        if relative.strip("/"):
            stripped.append((info, relative))
    return stripped


def archive_top_level(archive_path: Path, strip_root: bool = False) -> List[str]:
    """
    Top-level entry names of a zip archive

    Args:
        archive_path: Archive file path
        strip_root: Look through a single wrapping directory

    Raises:
        ValueError: If the file is not a zip archive
    """
    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = _archive_members(archive, strip_root)
    except zipfile.BadZipFile as e:
        raise ValueError(f"{archive_path} is not a valid zip archive: {e}")
    return sorted({relative.split("/", 1)[0] for _, relative in members})


def extract_archive(archive_path: Path, extract_to: Path, strip_root: bool = False) -> List[Path]:
    """
    Extract a zip archive

    Args:
        archive_path: Archive file path
        extract_to: Extraction directory
        strip_root: Drop a single directory wrapping every member

    Returns:
        Top-level paths created under ``extract_to``

    Raises:
        ValueError: If a member would land outside ``extract_to``
    """
    extract_to.mkdir(parents=True, exist_ok=True)
    root = extract_to.resolve()

    with zipfile.ZipFile(archive_path) as archive:
        planned = []
        for info, relative in _archive_members(archive, strip_root):
            target = (extract_to / relative).resolve()
            if target == root:
                continue
            if root not in target.parents:
                raise ValueError(f"Archive member escapes extraction directory: {info.filename}")
            planned.append((info, target))

        top_level = set()
        for info, target in planned:
            top_level.add(target.relative_to(root).parts[0])
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)

    return [extract_to / name for name in sorted(top_level)]


def is_same_path(a: Path, b: Path) -> bool:
    """Compare two paths after resolving symlinks"""
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return False


def contains_path(parent: Path, child: Path) -> bool:
    """Check whether ``child`` is ``parent`` or lies beneath it"""
    parent = parent.resolve()
    child = child.resolve()
    return parent == child or parent in child.parents


def atomic_write(file_path: Path,
                 content: Union[str, bytes],
                 mode: str = 'w') -> None:
    """
    Write file atomically

    Args:
        file_path: Target file path
        content: Content to write
        mode: Write mode
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temporary file first
    temp_fd, temp_path = tempfile.mkstemp(dir=file_path.parent)

    try:
        with os.fdopen(temp_fd, mode) as f:
            f.write(content)

        # Atomic rename
        os.replace(temp_path, file_path)

    except Exception:
        # Clean up temp file on error
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def read_json(file_path: Path) -> Any:
    """Read a JSON document"""
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_json(file_path: Path, data: Any) -> None:
    """Write a JSON document atomically with a trailing newline"""
    atomic_write(file_path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
