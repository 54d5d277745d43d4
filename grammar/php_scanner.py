"""
PHP Scanner - character-level helpers for the pattern extractors.

The extractors run their regexes over a masked copy of the source in which
comments are blanked out with spaces. Masking keeps every offset identical to
the original text, so a span found in the masked copy can be spliced back into
the original (see Schema.adapters.migration_adapter).
"""
import re
from typing import List, Optional

_QUOTED = re.compile(r"""'((?:[^'\\]|\\.)*)'|"((?:[^"\\]|\\.)*)\"""")


def mask_comments(text: str) -> str:
    """Replace // and /* */ comment bodies with spaces, keeping newlines."""
    out = list(text)
    i, n = 0, len(text)
    quote = None

    while i < n:
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if ch in ("'", '"'):
            quote = ch
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            for j in range(i, end):
                out[j] = " "
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            for j in range(i, end):
                if out[j] != "\n":
                    out[j] = " "
            i = end
        else:
            i += 1

    return "".join(out)


def find_matching_brace(text: str, open_index: int) -> Optional[int]:
    """Index of the '}' closing the '{' at open_index, skipping quoted strings.

    Returns None when the block is never closed.
    """
    depth = 0
    quote = None
    i = open_index

    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1

    return None


def statement_end(text: str, start: int) -> int:
    """Index of the ';' terminating the statement that begins at start (or len(text))."""
    quote = None
    i = start

    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            return i
        i += 1

    return len(text)


def quoted_strings(fragment: str) -> List[str]:
    """All single- or double-quoted literals in a fragment, in order."""
    return [a if a else b for a, b in _QUOTED.findall(fragment)]
