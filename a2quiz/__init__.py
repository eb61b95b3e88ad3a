"""a2quiz package initialization.

Quiz session engine and statistics for a local, single-user multiple-choice
exam trainer. Storage is a set of Parquet tables in a data directory.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
