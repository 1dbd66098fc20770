"""In-memory hierarchical filesystem.

The tree is rooted at a single directory. Paths are '/'-delimited strings;
empty components are discarded, so ``"a//b/"`` and ``"/a/b"`` both name
``a/b`` and ``""`` names the root. Files hold raw bytes.

A tree is usually seeded from a template directory with
:meth:`VirtualFileSystem.import_from_disk`, mutated in memory while a
pipeline runs, then materialized once with
:meth:`VirtualFileSystem.export_to_disk`.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, TypeAlias

from ..core.errors import AlreadyExists, DiskIOError, InvalidPath, NotADirectory, NotFound
from ..core.models import NodeInfo
from .io import atomic_write_bytes, read_bytes

logger = logging.getLogger(__name__)

_FORBIDDEN_COMPONENTS = frozenset({".", ".."})


@dataclass
class FileNode:
    content: bytes
    created: float
    modified: float


@dataclass
class DirectoryNode:
    created: float
    children: dict[str, "Node"] = field(default_factory=dict)


Node: TypeAlias = "FileNode | DirectoryNode"


def split_path(path: str) -> list[str]:
    """Split a virtual path into its non-empty components."""
    if not isinstance(path, str):
        raise TypeError(f"Virtual paths must be strings (type={type(path).__name__})")
    components = [part for part in path.split("/") if part]
    for part in components:
        if part in _FORBIDDEN_COMPONENTS:
            raise InvalidPath(path, f"component {part!r} is not allowed")
    return components


def join_path(*components: str) -> str:
    return "/".join(part for part in components if part)


def _as_bytes(content: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    raise TypeError(f"File content must be bytes or str (type={type(content).__name__})")


class VirtualFileSystem:
    """Mutable in-memory tree of files and directories."""

    def __init__(self) -> None:
        self._root = DirectoryNode(created=time.time())

    def _parent_for_write(self, components: list[str]) -> DirectoryNode:
        """Walk to the parent of the leaf, creating missing directories."""
        current = self._root
        for depth, component in enumerate(components[:-1], start=1):
            child = current.children.get(component)
            if child is None:
                child = DirectoryNode(created=time.time())
                current.children[component] = child
            elif isinstance(child, FileNode):
                raise NotADirectory(join_path(*components[:depth]))
            current = child
        return current

    def _lookup(self, path: str) -> Node:
        """Resolve an existing node, failing NotFound through files or gaps."""
        current: Node = self._root
        for component in split_path(path):
            if not isinstance(current, DirectoryNode):
                raise NotFound(path)
            child = current.children.get(component)
            if child is None:
                raise NotFound(path)
            current = child
        return current

    def create_directory(self, path: str) -> None:
        """Create a directory and any missing ancestors.

        Raises:
            InvalidPath: the path has no components
            NotADirectory: an ancestor is a file
            AlreadyExists: a node already exists at the path
        """
        components = split_path(path)
        if not components:
            raise InvalidPath(path)
        parent = self._parent_for_write(components)
        name = components[-1]
        if name in parent.children:
            raise AlreadyExists(join_path(*components))
        parent.children[name] = DirectoryNode(created=time.time())
        logger.debug(f"Created directory {join_path(*components)}")

    def write_file(self, path: str, content: bytes | str) -> None:
        """Create or overwrite a file, creating missing ancestors.

        Overwriting keeps the original creation time and bumps the
        modification time. A directory at the leaf is never replaced.

        Raises:
            InvalidPath: the path has no components
            NotADirectory: an ancestor is a file
            AlreadyExists: a directory exists at the path
        """
        data = _as_bytes(content)
        components = split_path(path)
        if not components:
            raise InvalidPath(path)
        parent = self._parent_for_write(components)
        name = components[-1]
        now = time.time()
        existing = parent.children.get(name)
        if isinstance(existing, DirectoryNode):
            raise AlreadyExists(join_path(*components))
        if isinstance(existing, FileNode):
            existing.content = data
            existing.modified = now
        else:
            parent.children[name] = FileNode(content=data, created=now, modified=now)
        logger.debug(f"Wrote {len(data)} byte(s) to {join_path(*components)}")

    def create_file(self, path: str, content: bytes | str) -> None:
        """Create a new file; fails AlreadyExists if anything is at the path."""
        components = split_path(path)
        if not components:
            raise InvalidPath(path)
        if self.exists(path):
            raise AlreadyExists(join_path(*components))
        self.write_file(path, content)

    def read_file(self, path: str) -> bytes:
        """Return the content of the file at ``path``.

        Raises:
            InvalidPath: the path has no components
            NotFound: a component is missing, or the path names a directory
        """
        if not split_path(path):
            raise InvalidPath(path)
        node = self._lookup(path)
        if not isinstance(node, FileNode):
            raise NotFound(path)
        return node.content

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_file(path).decode(encoding)

    def list_directory(self, path: str = "") -> set[str]:
        """Return the names of the children of the directory at ``path``.

        The root (empty path) is always listable.

        Raises:
            NotFound: a component is missing or an ancestor is a file
            NotADirectory: the path names a file
        """
        node = self._lookup(path)
        if isinstance(node, FileNode):
            raise NotADirectory(path)
        return set(node.children)

    def exists(self, path: str) -> bool:
        try:
            self._lookup(path)
        except NotFound:
            return False
        return True

    def is_file(self, path: str) -> bool:
        try:
            return isinstance(self._lookup(path), FileNode)
        except NotFound:
            return False

    def is_dir(self, path: str) -> bool:
        try:
            return isinstance(self._lookup(path), DirectoryNode)
        except NotFound:
            return False

    def stat(self, path: str) -> NodeInfo:
        node = self._lookup(path)
        normalized = join_path(*split_path(path))
        if isinstance(node, FileNode):
            return NodeInfo(
                path=normalized,
                kind="file",
                created=node.created,
                modified=node.modified,
                size=len(node.content),
            )
        return NodeInfo(
            path=normalized,
            kind="directory",
            created=node.created,
            child_count=len(node.children),
        )

    def walk(self) -> Iterator[tuple[str, bytes]]:
        """Yield ``(path, content)`` for every file, depth-first in name order."""
        yield from self._walk_files(self._root, "")

    def _walk_files(self, directory: DirectoryNode, prefix: str) -> Iterator[tuple[str, bytes]]:
        for name in sorted(directory.children):
            child = directory.children[name]
            child_path = join_path(prefix, name)
            if isinstance(child, FileNode):
                yield child_path, child.content
            else:
                yield from self._walk_files(child, child_path)

    def __iter__(self) -> Iterator[str]:
        return (path for path, _ in self.walk())

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    @classmethod
    def import_from_disk(cls, real_path: str | os.PathLike[str]) -> "VirtualFileSystem":
        """Mirror a real directory tree into a fresh virtual filesystem.

        Only regular files and directories are imported; symbolic links and
        special files are skipped.

        Raises:
            DiskIOError: the directory or one of its entries cannot be read
        """
        root = Path(real_path)
        fs = cls()
        fs._import_directory(root, "")
        logger.info(f"Imported {len(fs)} file(s) from {root}")
        return fs

    def _import_directory(self, real_dir: Path, prefix: str) -> None:
        try:
            with os.scandir(real_dir) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as exc:
            raise DiskIOError(real_dir, "Unable to list directory") from exc

        for entry in entries:
            virtual_path = join_path(prefix, entry.name)
            if entry.is_dir(follow_symlinks=False):
                self.create_directory(virtual_path)
                self._import_directory(Path(entry.path), virtual_path)
            elif entry.is_file(follow_symlinks=False):
                try:
                    content = read_bytes(Path(entry.path))
                except OSError as exc:
                    raise DiskIOError(entry.path, "Unable to read file") from exc
                self.write_file(virtual_path, content)
            else:
                logger.debug(f"Skipping unsupported entry {entry.path}")

    def export_to_disk(self, real_path: str | os.PathLike[str], file_mode: int = 0o644) -> int:
        """Materialize the tree under a real directory.

        Directories are created as needed (empty ones included). The first
        failure aborts the export; files already written stay on disk.

        Returns:
            Number of files written

        Raises:
            DiskIOError: a directory or file could not be written
        """
        base = Path(real_path)
        try:
            base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DiskIOError(base, "Unable to create output directory") from exc

        written = self._export_directory(self._root, base, file_mode)
        logger.info(f"Exported {written} file(s) to {base}")
        return written

    def _export_directory(self, directory: DirectoryNode, real_dir: Path, file_mode: int) -> int:
        written = 0
        for name in sorted(directory.children):
            child = directory.children[name]
            target = real_dir / name
            if isinstance(child, FileNode):
                try:
                    atomic_write_bytes(target, child.content, mode=file_mode)
                except OSError as exc:
                    raise DiskIOError(target, "Unable to write file") from exc
                logger.debug(f"Exported {target}")
                written += 1
            else:
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise DiskIOError(target, "Unable to create directory") from exc
                written += self._export_directory(child, target, file_mode)
        return written
