"""
Post-apply syntax validation using tree-sitter grammars.

Uses the tree-sitter >= 0.22 API with individual language packages.  Files
whose extension has no grammar are not checked.
"""

from __future__ import annotations

import importlib
import logging
import os
import threading
from typing import Optional

import tree_sitter as ts

logger = logging.getLogger(__name__)

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".go": "go",
    ".rs": "rust",
}

# language name -> (grammar module, function returning the language pointer)
_GRAMMARS: dict[str, tuple[str, str]] = {
    "python": ("tree_sitter_python", "language"),
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "java": ("tree_sitter_java", "language"),
    "c": ("tree_sitter_c", "language"),
    "cpp": ("tree_sitter_cpp", "language"),
    "go": ("tree_sitter_go", "language"),
    "rust": ("tree_sitter_rust", "language"),
}

# Cache Language objects; parsers are not shared across threads.
_LANG_CACHE: dict[str, ts.Language] = {}
_LANG_LOCK = threading.Lock()


def detect_language(file_path: str) -> Optional[str]:
    """Return the grammar name for *file_path*, or None if unsupported."""
    ext = os.path.splitext(file_path)[1].lower()
    return EXTENSION_TO_LANGUAGE.get(ext)


def _get_ts_language(language: str) -> ts.Language:
    with _LANG_LOCK:
        if language not in _LANG_CACHE:
            module_name, func_name = _GRAMMARS[language]
            module = importlib.import_module(module_name)
            _LANG_CACHE[language] = ts.Language(getattr(module, func_name)())
        return _LANG_CACHE[language]


def _first_error(node) -> Optional[object]:
    """Depth-first search for the first ERROR or MISSING node."""
    if node.is_error or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_error(child)
        if found is not None:
            return found
    return node


def check_syntax(file_path: str, content: str) -> Optional[str]:
    """Parse *content* with the grammar for *file_path*.

    Returns
    -------
    str | None
        A short description of the first syntax error, or None when the
        content parses cleanly or the language is not supported.
    """
    language = detect_language(file_path)
    if language is None:
        return None

    parser = ts.Parser(_get_ts_language(language))
    tree = parser.parse(content.encode("utf-8"))
    if not tree.root_node.has_error:
        return None

    node = _first_error(tree.root_node)
    row, col = node.start_point
    logger.debug(
        "[Patch] %s: %s syntax error at line %d, column %d",
        file_path, language, row + 1, col + 1,
    )
    return f"{language} syntax error at line {row + 1}, column {col + 1}"
