"""Repair of malformed tool-call argument strings.

Models regularly emit arguments that are not the JSON object the tool
schema asks for: an empty string, a payload with a stray ``null`` glued on,
JSON that was escaped twice, or bare comma-separated values. These are
rewritten into a JSON object or array. Anything still unparseable is left
for the deserializer to reject.
"""

from __future__ import annotations

import json

EMPTY_ARGUMENTS = "{}"
_NULL = "null"


def _is_json_container(text: str) -> bool:
    try:
        return isinstance(json.loads(text), (dict, list))
    except ValueError:
        return False


def _is_quote_wrapped(text: str) -> bool:
    return len(text) >= 2 and text[0] == '"' and text[-1] == '"'


def _is_balanced_container(text: str) -> bool:
    """True if ``text`` is one ``{...}`` or ``[...]`` with balanced brackets."""
    if len(text) < 2 or (text[0], text[-1]) not in (("{", "}"), ("[", "]")):
        return False

    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if escaped:
            escaped = False
        elif ch == "\\" and in_string:
            escaped = True
        elif ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch in "{[":
                depth += 1
            elif ch in "}]":
                depth -= 1
                if depth == 0 and i != len(text) - 1:
                    return False
                if depth < 0:
                    return False
    return depth == 0 and not in_string


def _looks_like_value(text: str) -> bool:
    return _is_balanced_container(text) or _is_quote_wrapped(text)


def _strip_null_tokens(text: str) -> str:
    """Remove ``null`` glued to the front or back of an otherwise valid payload."""
    while True:
        if text.startswith(_NULL) and len(text) > len(_NULL):
            rest = text[len(_NULL):].lstrip(" ,")
            if _looks_like_value(rest):
                text = rest
                continue
        if text.endswith(_NULL) and len(text) > len(_NULL):
            rest = text[: -len(_NULL)].rstrip(" ,")
            if _looks_like_value(rest):
                text = rest
                continue
        return text


def _unescape(text: str) -> str:
    return text.replace('\\"', '"').replace("\\\\", "\\")


def split_top_level(text: str) -> list[str]:
    """Split on commas outside quotes and brackets; tokens are trimmed, empties dropped."""
    tokens: list[str] = []
    current: list[str] = []
    quote_char: str | None = None
    escaped = False
    depth = 0

    for ch in text:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        if ch == "\\" and quote_char:
            current.append(ch)
            escaped = True
            continue
        if quote_char:
            if ch == quote_char:
                quote_char = None
        elif ch in "\"'":
            quote_char = ch
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            tokens.append("".join(current).strip())
            current = []
            continue
        current.append(ch)

    tokens.append("".join(current).strip())
    return [t for t in tokens if t]


def _as_json_token(token: str) -> str:
    # 'single quoted' -> "single quoted"
    if len(token) >= 2 and token[0] == "'" and token[-1] == "'":
        return json.dumps(token[1:-1])
    return token


def normalize_arguments(raw: str | None) -> str:
    """Normalize a raw tool-call argument string.

    Valid JSON objects and arrays are returned unchanged. Otherwise, in order:
    empty input becomes ``{}``; stray ``null`` tokens are stripped; one level
    of escaping is removed from double-escaped JSON; and what is left, if not
    an object or array, is treated as a positional argument list and wrapped
    in ``[...]``.

    >>> normalize_arguments('"/a/b.txt", 1, 100')
    '["/a/b.txt", 1, 100]'
    """
    if raw is None or not raw.strip():
        return EMPTY_ARGUMENTS
    if _is_json_container(raw):
        return raw

    text = _strip_null_tokens(raw.strip())
    if text == _NULL:
        return EMPTY_ARGUMENTS

    if _is_quote_wrapped(text) and len(text) > 2:
        unescaped = _unescape(text[1:-1]).strip()
        if _is_balanced_container(unescaped):
            text = unescaped
    elif '\\"' in text:
        unescaped = text.replace('\\"', '"')
        if _is_balanced_container(unescaped):
            text = unescaped

    if text.startswith(("{", "[")):
        return text

    return "[" + ", ".join(_as_json_token(t) for t in split_top_level(text)) + "]"
