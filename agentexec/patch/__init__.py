"""SEARCH/REPLACE patching: parser, match cascade, similarity gate, and legacy patch conversion."""

from .engine import (
    apply_block,
    apply_search_replace,
    apply_search_replace_file,
    read_file,
    resolve_path,
    write_to_file,
)
from .legacy import convert_legacy_patch, format_block, is_legacy_patch
from .matching import MATCH_STRATEGIES, Match, locate
from .parser import ParserState, parse_search_replace
from .similarity import broadcast_is_safe, is_safe_addition, levenshtein, similarity

__all__ = [
    "MATCH_STRATEGIES",
    "Match",
    "ParserState",
    "apply_block",
    "apply_search_replace",
    "apply_search_replace_file",
    "broadcast_is_safe",
    "convert_legacy_patch",
    "format_block",
    "is_legacy_patch",
    "is_safe_addition",
    "levenshtein",
    "locate",
    "parse_search_replace",
    "read_file",
    "resolve_path",
    "similarity",
    "write_to_file",
]
