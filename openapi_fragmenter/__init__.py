"""
OpenAPI Fragmenter - Split a monolithic OpenAPI document into a tree of fragments.

This package splits a specification into a root file, one file per component
and one file per path, keeping every ``$ref`` pointer exactly as written.
"""

from .core import (
    OpenAPISplitter,
    SplitResult,
    split,
)
from .coordinator import (
    CancellationToken,
    OperationCoordinator,
    OutcomeKind,
    SplitOutcome,
    SplitterState,
    SplitterStore,
    ValidationDebouncer,
)
from .errors import (
    ExportError,
    FragmenterError,
    InputDecodeError,
    InputEmptyError,
    NoChange,
    OperationCanceled,
    StructuralError,
    YamlSyntaxError,
)
from .fingerprint import ChangeDetector, fingerprint
from .tree import FileNode, FileTree, export_archive, select_content
from .validator import ValidationError, ValidationState, YamlValidator, dump_canonical

__version__ = "1.0.0"
__author__ = "OpenAPI Fragmenter Contributors"
__email__ = "support@example.com"

__all__ = [
    'OpenAPISplitter',
    'SplitResult',
    'split',
    'CancellationToken',
    'OperationCoordinator',
    'OutcomeKind',
    'SplitOutcome',
    'SplitterState',
    'SplitterStore',
    'ValidationDebouncer',
    'FragmenterError',
    'InputEmptyError',
    'InputDecodeError',
    'YamlSyntaxError',
    'StructuralError',
    'OperationCanceled',
    'NoChange',
    'ExportError',
    'ChangeDetector',
    'fingerprint',
    'FileNode',
    'FileTree',
    'export_archive',
    'select_content',
    'ValidationError',
    'ValidationState',
    'YamlValidator',
    'dump_canonical',
    '__version__',
]
