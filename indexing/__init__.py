"""
SubSearch Indexing Module
=========================
In-memory substring index over (key, id, value) triples.

Components:
  - result: SearchResult record and duration formatting
  - substring_index: SubstringIndex (set, delete, search, flush, snapshot, restore)
"""

from indexing.result import SearchResult, format_duration
from indexing.substring_index import SubstringIndex, clamp_range, fold_case

__all__ = ["SearchResult", "format_duration", "SubstringIndex", "clamp_range", "fold_case"]
