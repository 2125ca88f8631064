import re, json
from typing import Optional, Tuple
from urllib.parse import urlsplit


def find_first(pattern: str, text: str, flags: int = 0) -> Optional[str]:
    """Return the first non-empty capture group of the first match, or None."""
    match = re.search(pattern, text, flags)
    if not match:
        return None

    groups = match.groups() or (match.group(0),)
    for group in groups:
        if group:
            return group

    # Matched, but every capture is empty (e.g. value="")
    return "" if any(g is not None for g in groups) else None


def split_action(action: str) -> Optional[Tuple[str, str, str]]:
    """Split '<path>?<key>=<value>' on '?' and the first '=' of the query."""
    path, sep, query = action.partition("?")
    if not sep:
        return None

    key, sep, value = query.partition("=")
    if not sep or not key:
        return None

    return path, key, value


def origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def hostname(url: str) -> str:
    return urlsplit(url).hostname or ""


def js_string_literal(text: str) -> str:
    # JSON strings are valid JS double-quoted literals
    return json.dumps(text)
