"""Best-effort textual repair of malformed JSON emitted by a generative model.

``repair_json`` never raises. It fixes the mistakes models actually make:
markdown fences, stuttered duplicate keys, single-quoted strings, truncated
output, trailing commas, bare keys and missing commas between values. Every
step after quote normalization is string-aware and leaves the contents of
string literals untouched.
"""

from __future__ import annotations

import dataclasses
import logging
import re

log = logging.getLogger(__name__)

# Keys the model is known to repeat; the first occurrence wins
DUPLICATE_KEYS: tuple[str, ...] = ("issues", "strengths", "priorityActions", "failedItems")

_CLOSERS = {"{": "}", "[": "]"}
_OPENERS = {"}": "{", "]": "["}

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_BARE_TAIL = re.compile(r"[A-Za-z0-9_.+\-]+$")
_LITERAL = re.compile(r"true|false|null|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")


# --- Scanner ---


@dataclasses.dataclass(slots=True)
class _ScanState:
    """Nesting and string state after scanning a prefix of JSON text."""

    stack: list[str] = dataclasses.field(default_factory=list)
    in_string: bool = False
    escaped: bool = False
    string_start: int = -1
    string_is_key: bool = False
    # a complete key string has been read but its colon has not
    pending_key_start: int = -1
    expect_key: list[bool] = dataclasses.field(default_factory=list)


def _scan(text: str) -> _ScanState:
    state = _ScanState()
    for i, ch in enumerate(text):
        if state.in_string:
            if state.escaped:
                state.escaped = False
            elif ch == "\\":
                state.escaped = True
            elif ch == '"':
                state.in_string = False
                if state.string_is_key:
                    state.pending_key_start = state.string_start
            continue

        if ch == '"':
            state.in_string = True
            state.string_start = i
            state.string_is_key = bool(
                state.stack and state.stack[-1] == "{" and state.expect_key[-1]
            )
        elif ch in _CLOSERS:
            state.stack.append(ch)
            state.expect_key.append(ch == "{")
        elif ch in _OPENERS:
            if state.stack and state.stack[-1] == _OPENERS[ch]:
                state.stack.pop()
                state.expect_key.pop()
        elif ch == ":":
            state.pending_key_start = -1
            if state.expect_key:
                state.expect_key[-1] = False
        elif ch == ",":
            if state.stack and state.stack[-1] == "{":
                state.expect_key[-1] = True
    return state


def _segments(text: str) -> list[tuple[bool, str]]:
    """Split text into ``(is_string, chunk)`` runs; string chunks keep their quotes."""
    segments: list[tuple[bool, str]] = []
    i = 0
    n = len(text)
    while i < n:
        if text[i] == '"':
            j = i + 1
            escaped = False
            while j < n:
                ch = text[j]
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    break
                j += 1
            segments.append((True, text[i : j + 1]))
            i = j + 1
        else:
            j = text.find('"', i)
            j = n if j == -1 else j
            segments.append((False, text[i:j]))
            i = j
    return segments


def _map_outside_strings(text: str, fn) -> str:
    return "".join(chunk if is_str else fn(chunk) for is_str, chunk in _segments(text))


def find_value_end(text: str, start: int) -> int:
    """Index one past the JSON value beginning at ``start``.

    Objects and arrays are matched by depth, strings by their closing quote
    (honouring escapes), and primitives run to the next ``,``, ``]`` or ``}``.
    Truncated values end at ``len(text)``.
    """
    n = len(text)
    if start >= n:
        return n
    first = text[start]

    if first in _CLOSERS:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, n):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch in _CLOSERS:
                depth += 1
            elif ch in _OPENERS:
                depth -= 1
                if depth == 0:
                    return i + 1
        return n

    if first == '"':
        escaped = False
        for i in range(start + 1, n):
            ch = text[i]
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                return i + 1
        return n

    i = start
    while i < n and text[i] not in ",]}":
        i += 1
    return i


# --- Repair steps ---


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, closed or not."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    stripped = _FENCE_OPEN.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    log.debug("Stripped markdown fence from model output")
    return stripped.strip()


def _key_occurrences(text: str, key: str) -> list[tuple[int, int, int]]:
    """``(key_start, value_start, owner)`` for each occurrence of ``key`` as an object key.

    ``owner`` is the index of the enclosing ``{`` so duplicates are only
    collapsed within the same object.
    """
    token = f'"{key}"'
    found: list[tuple[int, int, int]] = []
    owners: list[int] = []
    in_string = False
    escaped = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            if text.startswith(token, i) and owners and owners[-1] >= 0:
                j = i + len(token)
                while j < n and text[j].isspace():
                    j += 1
                if j < n and text[j] == ":":
                    j += 1
                    while j < n and text[j].isspace():
                        j += 1
                    found.append((i, j, owners[-1]))
            in_string = True
        elif ch == "{":
            owners.append(i)
        elif ch == "[":
            owners.append(-1)
        elif ch in _OPENERS and owners:
            owners.pop()
        i += 1
    return found


def remove_duplicate_keys(text: str, key: str) -> str:
    """Drop every repeat of ``key`` within an object, keeping the first."""
    occurrences = _key_occurrences(text, key)
    seen: set[int] = set()
    duplicates: list[tuple[int, int]] = []
    for key_start, value_start, owner in occurrences:
        if owner in seen:
            duplicates.append((key_start, value_start))
        seen.add(owner)
    if not duplicates:
        return text

    log.debug("Collapsing %d duplicate %r key(s)", len(duplicates), key)
    result = text
    # Back to front so earlier indices stay valid
    for key_start, value_start in reversed(duplicates):
        value_end = find_value_end(result, value_start)
        remove_start, remove_end = key_start, value_end
        before = result[:key_start].rstrip()
        if before.endswith(","):
            remove_start = len(before) - 1
        else:
            after = result[value_end:]
            stripped = after.lstrip()
            if stripped.startswith(","):
                remove_end = value_end + (len(after) - len(stripped)) + 1
        result = result[:remove_start] + result[remove_end:]
    return result


def normalize_quotes(text: str) -> str:
    """Rewrite single-quoted string literals as double-quoted ones.

    Apostrophes inside double-quoted strings are left alone.
    """
    if "'" not in text:
        return text
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            end = find_value_end(text, i)
            out.append(text[i:end])
            i = end
        elif ch == "'":
            j = i + 1
            buf: list[str] = []
            while j < n and text[j] != "'":
                if text[j] == "\\" and j + 1 < n:
                    nxt = text[j + 1]
                    buf.append("'" if nxt == "'" else "\\" + nxt)
                    j += 2
                    continue
                buf.append('\\"' if text[j] == '"' else text[j])
                j += 1
            out.append('"' + "".join(buf) + ('"' if j < n else ""))
            i = j + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _drop_member_from(text: str, start: int) -> str:
    text = text[:start].rstrip()
    if text.endswith(","):
        text = text[:-1].rstrip()
    return text


def close_truncated(text: str) -> str:
    """Complete JSON that stops before its closing brackets."""
    text = text.rstrip()
    state = _scan(text)
    if not state.stack and not state.in_string:
        return text

    log.debug(
        "Closing truncated JSON (open=%s, in_string=%s)",
        "".join(state.stack),
        state.in_string,
    )
    if state.in_string:
        if state.string_is_key:
            text = _drop_member_from(text, state.string_start)
        else:
            if state.escaped:
                text = text[:-1]
            text += '"'

    # Settle the tail until it ends on a complete value or an opener
    while True:
        text = text.rstrip()
        state = _scan(text)
        if text.endswith(":"):
            text += " null"
            break
        if text.endswith(","):
            text = text[:-1]
            continue
        if state.pending_key_start >= 0:
            text = _drop_member_from(text, state.pending_key_start)
            continue
        tail = _BARE_TAIL.search(text)
        if tail and not _LITERAL.fullmatch(tail.group()):
            text = text[: tail.start()]
            continue
        break

    state = _scan(text)
    return text + "".join(_CLOSERS[c] for c in reversed(state.stack))


def strip_trailing_commas(text: str) -> str:
    return _map_outside_strings(text, lambda s: _TRAILING_COMMA.sub(r"\1", s))


def quote_bare_keys(text: str) -> str:
    return _map_outside_strings(text, lambda s: _BARE_KEY.sub(r'\1"\2"\3', s))


def insert_missing_commas(text: str) -> str:
    """Insert commas between adjacent values such as ``}{``, ``] [`` or ``"a" "b"``."""
    out: list[str] = []
    value_ended = False
    for is_str, chunk in _segments(text):
        if is_str:
            if value_ended:
                out.append(",")
            out.append(chunk)
            value_ended = True
            continue
        buf: list[str] = []
        # position just after the last value, where a comma belongs
        value_end_at = 0
        for ch in chunk:
            if ch.isspace():
                buf.append(ch)
                continue
            if ch in "{[" and value_ended:
                buf.insert(value_end_at, ",")
            buf.append(ch)
            value_ended = ch in "}]"
            value_end_at = len(buf)
        out.append("".join(buf))
    return "".join(out)


def repair_json(text: str) -> str:
    """Apply every repair step in order and return the repaired text.

    The result is not guaranteed to parse; callers treat a second parse
    failure as terminal.
    """
    fixed = strip_code_fence(text)
    for key in DUPLICATE_KEYS:
        fixed = remove_duplicate_keys(fixed, key)
    fixed = normalize_quotes(fixed)
    fixed = close_truncated(fixed)
    fixed = strip_trailing_commas(fixed)
    fixed = quote_bare_keys(fixed)
    fixed = insert_missing_commas(fixed)
    return fixed
