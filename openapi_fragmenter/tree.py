"""
Virtual file tree produced by a split, plus selection and export helpers.
"""

import io
import os
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .config import ARCHIVE_NAME, PLACEHOLDER_CONTENT
from .errors import ExportError

logger = logging.getLogger(__name__)

ArchiveBuilder = Callable[[Dict[str, bytes]], bytes]


@dataclass
class FileNode:
    """
    One entry of the virtual tree.

    A node is a leaf (``content`` set, ``children`` None) or a directory
    (``children`` set, possibly empty, ``content`` None).
    """
    id: str
    name: str
    path: str
    content: Optional[str] = None
    children: Optional[List["FileNode"]] = None

    def __post_init__(self):
        if (self.content is None) == (self.children is None):
            raise ValueError(f"Node '{self.path}' must have either content or children")
        if self.path.startswith("/"):
            raise ValueError(f"Node path must be relative: '{self.path}'")

    @classmethod
    def leaf(cls, name: str, path: str, content: str, node_id: Optional[str] = None) -> "FileNode":
        return cls(id=node_id or path, name=name, path=path, content=content)

    @classmethod
    def directory(cls, name: str, path: str, node_id: Optional[str] = None) -> "FileNode":
        return cls(id=node_id or path, name=name, path=path, children=[])

    @property
    def is_leaf(self) -> bool:
        return self.content is not None

    @property
    def is_directory(self) -> bool:
        return self.children is not None

    def child_names(self) -> List[str]:
        return [child.name for child in self.children or []]

    def walk(self) -> Iterator["FileNode"]:
        """Yield this node and its descendants depth-first."""
        yield self
        for child in self.children or []:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name, "path": self.path}
        if self.is_leaf:
            data["content"] = self.content
        else:
            data["children"] = [child.to_dict() for child in self.children]
        return data


class FileTree:
    """Ordered forest of root nodes: ``[root, components?, paths?]``."""

    def __init__(self, roots: Optional[List[FileNode]] = None):
        self.roots: List[FileNode] = list(roots or [])

    def __iter__(self) -> Iterator[FileNode]:
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)

    def __repr__(self) -> str:
        return f"FileTree({[root.path for root in self.roots]!r})"

    @property
    def is_empty(self) -> bool:
        return not self.roots

    def iter_nodes(self) -> Iterator[FileNode]:
        for root in self.roots:
            yield from root.walk()

    def iter_leaves(self) -> Iterator[FileNode]:
        return (node for node in self.iter_nodes() if node.is_leaf)

    def find(self, path: str) -> Optional[FileNode]:
        for node in self.iter_nodes():
            if node.path == path:
                return node
        return None

    def collect_files(self) -> Dict[str, bytes]:
        """
        Collect every leaf into a flat mapping.

        Returns:
            Mapping of virtual path to UTF-8 encoded content, in depth-first
            order. Directories contribute nothing on their own.
        """
        return {leaf.path: leaf.content.encode("utf-8") for leaf in self.iter_leaves()}

    def to_list(self) -> List[Dict[str, Any]]:
        return [root.to_dict() for root in self.roots]


def select_content(node: Optional[FileNode]) -> str:
    """Return a leaf's content, or the placeholder for directories."""
    if node is None or node.content is None:
        return PLACEHOLDER_CONTENT
    return node.content


def build_zip_archive(entries: Dict[str, bytes]) -> bytes:
    """
    Build a ZIP archive in memory.

    Args:
        entries: Mapping of archive entry path to content

    Returns:
        The archive bytes
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for arcname, data in entries.items():
            zf.writestr(arcname, data)
    return buffer.getvalue()


def export_archive(tree: FileTree, builder: Optional[ArchiveBuilder] = None) -> bytes:
    """
    Hand every leaf of the tree to an archive builder.

    Args:
        tree: Tree to export
        builder: Callable turning ``{path: bytes}`` into archive bytes;
            defaults to ``build_zip_archive``

    Returns:
        The archive bytes

    Raises:
        ExportError: If there is nothing to export or the builder fails
    """
    if tree.is_empty:
        raise ExportError("No files to export")

    entries = tree.collect_files()
    if not entries:
        raise ExportError("No files with content to export")

    builder = builder or build_zip_archive
    try:
        return builder(entries)
    except Exception as e:
        raise ExportError(f"Error building archive: {e}") from e


def write_archive(
    tree: FileTree,
    output_dir: Union[str, Path],
    builder: Optional[ArchiveBuilder] = None,
) -> Path:
    """
    Export the tree and write the archive as ``openapi-split.zip``.

    Returns:
        Path to the written archive
    """
    data = export_archive(tree, builder)
    os.makedirs(output_dir, exist_ok=True)
    filepath = Path(output_dir) / ARCHIVE_NAME

    try:
        filepath.write_bytes(data)
    except OSError as e:
        raise ExportError(f"Error writing {filepath}: {e}") from e

    logger.info(f"Created: {filepath}")
    return filepath


def write_tree(tree: FileTree, output_dir: Union[str, Path]) -> List[Path]:
    """
    Write every leaf of the tree to disk under its virtual path.

    Args:
        tree: Tree to write
        output_dir: Directory the virtual paths are relative to

    Returns:
        List of written file paths

    Raises:
        ExportError: If a file cannot be written
    """
    output_dir = Path(output_dir)
    base = output_dir.resolve()
    targets = []

    for leaf in tree.iter_leaves():
        filepath = output_dir.joinpath(*leaf.path.split("/"))
        # Path keys may contain ".." segments
        if base not in filepath.resolve().parents:
            raise ExportError(f"Refusing to write outside {output_dir}: {leaf.path}")
        targets.append((filepath, leaf))

    created_files = []
    for filepath, leaf in targets:
        try:
            os.makedirs(filepath.parent, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write(leaf.content)
        except OSError as e:
            raise ExportError(f"Error writing {filepath}: {e}") from e

        logger.info(f"Created: {filepath}")
        created_files.append(filepath)

    return created_files
