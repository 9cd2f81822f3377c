"""
Default settings for OpenAPI Fragmenter.

All values can be overridden through constructor arguments or CLI flags.
"""

# Quiet period before live validation runs after an edit
VALIDATION_DEBOUNCE_SECONDS = 0.3

# Inputs above this many bytes need confirmation before processing (1 MiB)
LARGE_INPUT_THRESHOLD = 1024 * 1024

ROOT_FILE_NAME = "openapi.yaml"
ROOT_FILE_ID = "openapi-root"
COMPONENTS_DIR = "components"
PATHS_DIR = "paths"
FRAGMENT_EXTENSION = ".yaml"

# Fallback segment for path keys made only of slashes
ROOT_SEGMENT = "root"

ARCHIVE_NAME = "openapi-split.zip"
DEFAULT_OUTPUT_DIR = "split_specs"

PLACEHOLDER_CONTENT = "# Select a file to view its content."
