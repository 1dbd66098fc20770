"""Virtual filesystem and disk helpers."""

from .memfs import DirectoryNode, FileNode, VirtualFileSystem, join_path, split_path

__all__ = ["DirectoryNode", "FileNode", "VirtualFileSystem", "join_path", "split_path"]
