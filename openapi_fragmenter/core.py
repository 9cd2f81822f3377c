"""
Core logic for OpenAPI Fragmenter.

This module splits a parsed OpenAPI document into a virtual file tree: one
root file, one file per component, and one file per path. ``$ref`` pointers
are copied verbatim, so every fragment carries exactly the reference text of
the original document.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .config import (
    COMPONENTS_DIR,
    FRAGMENT_EXTENSION,
    PATHS_DIR,
    ROOT_FILE_ID,
    ROOT_FILE_NAME,
    ROOT_SEGMENT,
)
from .errors import StructuralError
from .tree import FileNode, FileTree
from .validator import dump_canonical

# Configure logger
logger = logging.getLogger(__name__)

Document = Dict[str, Any]

EXCLUDED_ROOT_KEYS = ('paths', 'components')


@dataclass
class SplitResult:
    """Tree produced by a split, with the root document it was built from."""
    tree: FileTree
    root_document: Document


def normalize_path_key(path_key: Any) -> List[str]:
    """
    Turn a path key into directory segments.

    Leading and trailing slashes are stripped and empty segments dropped;
    a key made only of slashes becomes ``["root"]``.

    Args:
        path_key: Key from the ``paths`` mapping, e.g. ``/users/{id}``

    Returns:
        Non-empty list of segments
    """
    segments = [s for s in str(path_key).strip('/').split('/') if s]
    return segments or [ROOT_SEGMENT]


def _segment_name(name: Any) -> str:
    """Component names become a single path segment: ``/`` is replaced by ``_``."""
    return str(name).replace('/', '_')


def _unique_name(parent: FileNode, name: str, extension: str = "") -> str:
    """
    Return ``name + extension``, suffixed with ``_2``, ``_3``... when a
    sibling already uses that name.
    """
    taken = set(parent.child_names())
    candidate = f"{name}{extension}"
    counter = 2
    while candidate in taken:
        candidate = f"{name}_{counter}{extension}"
        counter += 1
    if counter > 2:
        logger.warning(f"Name '{name}{extension}' already used in '{parent.path}', using '{candidate}'")
    return candidate


class OpenAPISplitter:
    """
    Splits an OpenAPI document into root, component and path fragments.

    The splitter is stateless; ``split`` never mutates its input.
    """

    def split(self, document: Any) -> FileTree:
        """
        Split a parsed document into a file tree.

        Args:
            document: Value returned by the YAML parser

        Returns:
            FileTree ``[root, components?, paths?]``

        Raises:
            StructuralError: If the document is not a mapping
        """
        return self.split_document(document).tree

    def split_document(self, document: Any) -> SplitResult:
        """
        Split a parsed document and keep the root document alongside the tree.

        Raises:
            StructuralError: If the document is not a mapping
        """
        if not isinstance(document, dict):
            raise StructuralError(
                f"Document must be a mapping, got {type(document).__name__}"
            )

        doc = copy.deepcopy(document)

        root_node, root_doc = self.create_root_fragment(doc)
        tree = [root_node]

        components_node = self.split_components(doc.get('components'))
        if components_node is not None:
            tree.append(components_node)

        paths_node = self.split_paths(doc.get('paths'))
        if paths_node is not None:
            tree.append(paths_node)

        result = FileTree(tree)
        logger.info(f"Split complete. Created {sum(1 for _ in result.iter_leaves())} files")
        return SplitResult(tree=result, root_document=root_doc)

    def create_root_fragment(self, doc: Document) -> Tuple[FileNode, Document]:
        """
        Create the root file with everything except paths and components.

        Args:
            doc: Cloned document

        Returns:
            The root leaf and the document it serializes
        """
        root_doc = {key: value for key, value in doc.items() if key not in EXCLUDED_ROOT_KEYS}
        node = FileNode.leaf(
            name=ROOT_FILE_NAME,
            path=ROOT_FILE_NAME,
            content=dump_canonical(root_doc),
            node_id=ROOT_FILE_ID,
        )
        return node, root_doc

    def split_components(self, components: Any) -> Optional[FileNode]:
        """
        Create one file per component entry, grouped by category.

        Any category name is accepted. Categories that are not mappings or
        have no entries produce no directory.

        Args:
            components: Value of the ``components`` key

        Returns:
            The ``components`` directory, or None if it would be empty
        """
        if not isinstance(components, dict):
            return None

        components_root = FileNode.directory(COMPONENTS_DIR, COMPONENTS_DIR)

        for category, entries in components.items():
            if not isinstance(entries, dict):
                logger.debug(f"Skipping component category '{category}': not a mapping")
                continue

            dir_name = _unique_name(components_root, _segment_name(category))
            category_node = FileNode.directory(dir_name, f"{COMPONENTS_DIR}/{dir_name}")

            for name, value in entries.items():
                file_name = _unique_name(category_node, _segment_name(name), FRAGMENT_EXTENSION)
                fragment = {'components': {category: {name: value}}}
                category_node.children.append(FileNode.leaf(
                    name=file_name,
                    path=f"{category_node.path}/{file_name}",
                    content=dump_canonical(fragment),
                ))

            if category_node.children:
                components_root.children.append(category_node)

        return components_root if components_root.children else None

    def split_paths(self, paths: Any) -> Optional[FileNode]:
        """
        Create one file per path key, nested by URL segment.

        ``/users/{id}/orders`` becomes ``paths/users/{id}/orders.yaml``. The
        file keeps the original key, slashes and braces included.

        Args:
            paths: Value of the ``paths`` key

        Returns:
            The ``paths`` directory, or None if there are no paths
        """
        if not isinstance(paths, dict) or not paths:
            return None

        paths_root = FileNode.directory(PATHS_DIR, PATHS_DIR)
        # Directories are reused by segment chain, never by leaf name
        directories: Dict[Tuple[str, ...], FileNode] = {}

        for path_key, path_item in paths.items():
            segments = normalize_path_key(path_key)

            current_dir = paths_root
            for depth, segment in enumerate(segments[:-1], start=1):
                chain = tuple(segments[:depth])
                child_dir = directories.get(chain)
                if child_dir is None:
                    dir_name = _unique_name(current_dir, segment)
                    child_dir = FileNode.directory(dir_name, f"{current_dir.path}/{dir_name}")
                    current_dir.children.append(child_dir)
                    directories[chain] = child_dir
                current_dir = child_dir

            file_name = _unique_name(current_dir, segments[-1], FRAGMENT_EXTENSION)
            fragment = {'paths': {path_key: path_item}}
            current_dir.children.append(FileNode.leaf(
                name=file_name,
                path=f"{current_dir.path}/{file_name}",
                content=dump_canonical(fragment),
            ))

        return paths_root


def split(document: Any) -> FileTree:
    """Split a parsed document with a default ``OpenAPISplitter``."""
    return OpenAPISplitter().split(document)
