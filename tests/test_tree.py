"""
Unit tests for openapi_fragmenter.tree module.
"""

import io
import shutil
import tempfile
import unittest
import zipfile
from pathlib import Path

from openapi_fragmenter.config import ARCHIVE_NAME, PLACEHOLDER_CONTENT
from openapi_fragmenter.core import split
from openapi_fragmenter.errors import ExportError
from openapi_fragmenter.tree import (
    FileNode,
    FileTree,
    build_zip_archive,
    export_archive,
    select_content,
    write_archive,
    write_tree,
)


SAMPLE_DOCUMENT = {
    'openapi': '3.0.0',
    'info': {'title': 'Test API'},
    'paths': {
        '/users': {'get': {'responses': {'200': {'$ref': '#/components/responses/Ok'}}}},
        '/users/{id}': {'get': {}},
    },
    'components': {
        'responses': {'Ok': {'description': 'Success'}},
    },
}


class TestFileNode(unittest.TestCase):
    """Test cases for FileNode."""

    def test_leaf(self):
        """Test leaf construction."""
        node = FileNode.leaf('a.yaml', 'paths/a.yaml', 'x: 1\n')

        self.assertTrue(node.is_leaf)
        self.assertFalse(node.is_directory)
        self.assertEqual(node.id, 'paths/a.yaml')

    def test_directory(self):
        """Test directory construction."""
        node = FileNode.directory('paths', 'paths')

        self.assertTrue(node.is_directory)
        self.assertEqual(node.children, [])
        self.assertIsNone(node.content)

    def test_leaf_or_directory_required(self):
        """Test that a node cannot be both or neither."""
        with self.assertRaises(ValueError):
            FileNode(id='x', name='x', path='x')
        with self.assertRaises(ValueError):
            FileNode(id='x', name='x', path='x', content='', children=[])

    def test_absolute_path_rejected(self):
        """Test that paths must be relative."""
        with self.assertRaises(ValueError):
            FileNode.leaf('a.yaml', '/a.yaml', 'x: 1\n')

    def test_to_dict(self):
        """Test conversion to plain data."""
        directory = FileNode.directory('paths', 'paths')
        directory.children.append(FileNode.leaf('a.yaml', 'paths/a.yaml', 'x: 1\n'))

        self.assertEqual(directory.to_dict(), {
            'id': 'paths',
            'name': 'paths',
            'path': 'paths',
            'children': [
                {'id': 'paths/a.yaml', 'name': 'a.yaml', 'path': 'paths/a.yaml', 'content': 'x: 1\n'}
            ],
        })


class TestFileTree(unittest.TestCase):
    """Test cases for FileTree traversal and selection."""

    def setUp(self):
        """Set up test fixtures."""
        self.tree = split(SAMPLE_DOCUMENT)

    def test_iter_leaves_depth_first(self):
        """Test the depth-first leaf order."""
        self.assertEqual(
            [leaf.path for leaf in self.tree.iter_leaves()],
            [
                'openapi.yaml',
                'components/responses/Ok.yaml',
                'paths/users.yaml',
                'paths/users/{id}.yaml',
            ]
        )

    def test_collect_files(self):
        """Test that only leaves are collected, as UTF-8 bytes."""
        files = self.tree.collect_files()

        self.assertEqual(list(files.keys()), [leaf.path for leaf in self.tree.iter_leaves()])
        self.assertNotIn('paths', files)
        self.assertEqual(files['openapi.yaml'], self.tree.roots[0].content.encode('utf-8'))

    def test_find(self):
        """Test lookup by path."""
        self.assertTrue(self.tree.find('paths/users').is_directory)
        self.assertIsNone(self.tree.find('paths/missing.yaml'))

    def test_select_content(self):
        """Test leaf content and the directory placeholder."""
        leaf = self.tree.find('paths/users.yaml')

        self.assertEqual(select_content(leaf), leaf.content)
        self.assertEqual(select_content(self.tree.find('paths')), PLACEHOLDER_CONTENT)
        self.assertEqual(select_content(None), PLACEHOLDER_CONTENT)

    def test_empty_tree(self):
        """Test an empty tree."""
        tree = FileTree()

        self.assertTrue(tree.is_empty)
        self.assertEqual(tree.collect_files(), {})
        self.assertEqual(tree.to_list(), [])


class TestExport(unittest.TestCase):
    """Test cases for archive export and writing to disk."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.tree = split(SAMPLE_DOCUMENT)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_zip_entries_match_leaf_paths(self):
        """Test that archive entry names equal the virtual paths."""
        data = export_archive(self.tree)

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            self.assertEqual(zf.namelist(), [leaf.path for leaf in self.tree.iter_leaves()])
            self.assertEqual(
                zf.read('paths/users/{id}.yaml').decode('utf-8'),
                self.tree.find('paths/users/{id}.yaml').content
            )

    def test_custom_builder(self):
        """Test that a custom builder receives the collected files."""
        received = {}

        def builder(entries):
            received.update(entries)
            return b'archive'

        self.assertEqual(export_archive(self.tree, builder), b'archive')
        self.assertEqual(received, self.tree.collect_files())

    def test_builder_failure(self):
        """Test that builder failures become ExportError."""
        def builder(entries):
            raise RuntimeError("disk full")

        with self.assertRaises(ExportError) as ctx:
            export_archive(self.tree, builder)
        self.assertIn("disk full", str(ctx.exception))

    def test_empty_tree_export(self):
        """Test that an empty tree cannot be exported."""
        with self.assertRaises(ExportError):
            export_archive(FileTree())

    def test_build_zip_archive(self):
        """Test the default archive builder directly."""
        data = build_zip_archive({'a/b.yaml': b'x: 1\n'})

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            self.assertEqual(zf.read('a/b.yaml'), b'x: 1\n')

    def test_write_archive(self):
        """Test writing the archive under its fixed name."""
        filepath = write_archive(self.tree, self.temp_dir)

        self.assertEqual(filepath, Path(self.temp_dir) / ARCHIVE_NAME)
        self.assertTrue(zipfile.is_zipfile(filepath))

    def test_write_tree(self):
        """Test writing every leaf to disk."""
        output_dir = Path(self.temp_dir) / 'out'
        files = write_tree(self.tree, output_dir)

        self.assertEqual(len(files), 4)
        self.assertEqual(
            (output_dir / 'paths' / 'users' / '{id}.yaml').read_text(encoding='utf-8'),
            self.tree.find('paths/users/{id}.yaml').content
        )
        self.assertTrue((output_dir / 'openapi.yaml').exists())

    def test_write_tree_refuses_escaping_paths(self):
        """Test that '..' segments cannot escape the output directory."""
        tree = split({'paths': {'/../../evil': {'get': {}}}})
        output_dir = Path(self.temp_dir) / 'nested' / 'out'

        with self.assertRaises(ExportError):
            write_tree(tree, output_dir)
        self.assertFalse((Path(self.temp_dir) / 'evil.yaml').exists())
        self.assertFalse(output_dir.exists())


if __name__ == '__main__':
    unittest.main()
