"""
Unit tests for openapi_fragmenter.cli module.
"""

import functools
import io
import shutil
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest import mock

import yaml

from openapi_fragmenter.cli import create_parser, main
from openapi_fragmenter.coordinator import OperationCoordinator


SAMPLE_YAML = """\
openapi: 3.0.0
info:
  title: Test API
paths:
  /users/{id}:
    get:
      responses:
        '200':
          $ref: '#/components/responses/User'
components:
  responses:
    User:
      description: Success
"""


class TestCLI(unittest.TestCase):
    """Test cases for the command-line interface."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.input_file = Path(self.temp_dir) / 'openapi.yaml'
        self.input_file.write_text(SAMPLE_YAML, encoding='utf-8')
        self.output_dir = Path(self.temp_dir) / 'out'

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def run_main(self, *argv):
        with mock.patch('sys.stdout', new_callable=io.StringIO) as stdout, \
                mock.patch('sys.stderr', new_callable=io.StringIO) as stderr:
            try:
                main(list(argv))
                code = 0
            except SystemExit as e:
                code = e.code
        return code, stdout.getvalue(), stderr.getvalue()

    def test_parser_defaults(self):
        """Test default argument values."""
        args = create_parser().parse_args(['spec.yaml'])

        self.assertEqual(args.output, 'split_specs')
        self.assertFalse(args.zip)
        self.assertFalse(args.check)
        self.assertFalse(args.yes)

    def test_split_to_directory(self):
        """Test writing fragments to the output directory."""
        code, stdout, _ = self.run_main(str(self.input_file), '-o', str(self.output_dir))

        self.assertEqual(code, 0)
        self.assertIn('Split complete', stdout)

        fragment = self.output_dir / 'paths' / 'users' / '{id}.yaml'
        content = yaml.safe_load(fragment.read_text(encoding='utf-8'))
        self.assertEqual(
            content['paths']['/users/{id}']['get']['responses']['200'],
            {'$ref': '#/components/responses/User'}
        )
        self.assertTrue((self.output_dir / 'components' / 'responses' / 'User.yaml').exists())
        self.assertTrue((self.output_dir / 'openapi.yaml').exists())

    def test_split_to_zip(self):
        """Test writing a single archive."""
        code, _, _ = self.run_main(str(self.input_file), '-o', str(self.output_dir), '--zip')

        self.assertEqual(code, 0)
        with zipfile.ZipFile(self.output_dir / 'openapi-split.zip') as zf:
            self.assertEqual(
                zf.namelist(),
                ['openapi.yaml', 'components/responses/User.yaml', 'paths/users/{id}.yaml']
            )

    def test_check_valid(self):
        """Test --check on a valid file."""
        code, stdout, _ = self.run_main(str(self.input_file), '--check')

        self.assertEqual(code, 0)
        self.assertIn('OK', stdout)

    def test_check_invalid(self):
        """Test --check reports line and column."""
        self.input_file.write_text("foo: [1,2", encoding='utf-8')
        code, _, stderr = self.run_main(str(self.input_file), '--check')

        self.assertEqual(code, 1)
        self.assertIn(f"{self.input_file}:1:", stderr)

    def test_format(self):
        """Test --format prints the canonical form."""
        self.input_file.write_text("b:    1\na:\n- x\n", encoding='utf-8')
        code, stdout, _ = self.run_main(str(self.input_file), '--format')

        self.assertEqual(code, 0)
        self.assertEqual(stdout, "b: 1\na:\n  - x\n")

    def test_invalid_yaml_fails(self):
        """Test that a syntax error exits with status 1."""
        self.input_file.write_text("foo: [1,2", encoding='utf-8')
        code, _, stderr = self.run_main(str(self.input_file), '-o', str(self.output_dir))

        self.assertEqual(code, 1)
        self.assertIn(':1:', stderr)
        self.assertFalse(self.output_dir.exists())

    def test_missing_file(self):
        """Test a nonexistent input file."""
        code, _, stderr = self.run_main(str(Path(self.temp_dir) / 'missing.yaml'))

        self.assertEqual(code, 1)
        self.assertIn('not found', stderr)

    def test_large_file_declined(self):
        """Test that answering no to the size prompt aborts."""
        small_threshold = functools.partial(OperationCoordinator, large_input_threshold=10)
        with mock.patch('openapi_fragmenter.cli.OperationCoordinator', side_effect=small_threshold), \
                mock.patch('builtins.input', return_value='n') as prompt:
            code, stdout, _ = self.run_main(str(self.input_file), '-o', str(self.output_dir))

        prompt.assert_called_once()
        self.assertEqual(code, 1)
        self.assertIn('Aborted', stdout)
        self.assertFalse(self.output_dir.exists())


if __name__ == '__main__':
    unittest.main()
