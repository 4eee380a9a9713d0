"""Configuration constants for the Patchbay web backend."""

import os
from pathlib import Path

# Project whose .patchbay/ settings apply to this server
PROJECT_ROOT = Path(os.environ.get("PATCHBAY_PROJECT_ROOT", str(Path.cwd()))).expanduser().resolve()

# Streaming media types
NDJSON_MEDIA_TYPE = "application/json"
RAW_COMMAND_MEDIA_TYPE = "text/plain"
