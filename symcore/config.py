"""Centralized configuration for symcore.

Defaults can be overridden via environment variables prefixed with
``SYMCORE_``; the CLI overrides them again per invocation.
"""

import os
from pathlib import Path

# Rewriting limits
MAX_ITERATIONS = int(os.getenv("SYMCORE_MAX_ITERATIONS", "100"))

# Significant digits for every folded numeric result
DECIMAL_PRECISION = int(os.getenv("SYMCORE_DECIMAL_PRECISION", "28"))

# Parser nesting limit (the tree algorithms are recursive)
MAX_EXPRESSION_DEPTH = int(os.getenv("SYMCORE_MAX_EXPRESSION_DEPTH", "100"))

# Logging
LOG_LEVEL = os.getenv("SYMCORE_LOG_LEVEL", "WARNING")
LOG_FILE = os.getenv("SYMCORE_LOG_FILE") or None

# REPL
HISTORY_FILE = Path(
    os.getenv("SYMCORE_HISTORY_FILE", str(Path.home() / ".symcore_history"))
)
HISTORY_LENGTH = int(os.getenv("SYMCORE_HISTORY_LENGTH", "1000"))
