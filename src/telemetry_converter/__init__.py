"""Package initialization for telemetry-converter.

Having this file allows relative imports (e.g. `from .models import ...`) to
resolve under tooling (mypy/ruff) and matches the CLI usage pattern
`python -m telemetry_converter serve`.
"""

__all__ = []
