"""
Tolerant JSON parsing for creative LLM responses.

Text-generation services return free text that is expected, but not
guaranteed, to contain a JSON object. Responses get truncated at the token
limit, wrapped in markdown fences, surrounded by prose, or carry small
syntax slips. Each malformation class has its own repair function; they are
applied in a fixed order by repair_json().

All repairs only touch text outside string literals.
"""

import json
import re
from typing import Any, Callable, Dict, List, Tuple

from core.errors import ParseError


_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_DUPLICATE_COMMA_RE = re.compile(r",(\s*,)+")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_ADJACENT_CONTAINERS_RE = re.compile(r"([}\]])(\s*)([{\[])")
# A value directly followed by a string (the next key or array item)
_VALUE_BEFORE_STRING_RE = re.compile(r"(\d|true|false|null|[}\]])(\s*)$")

_CLOSERS = {"{": "}", "[": "]"}


def _scan(text: str) -> Tuple[List[Tuple[bool, str]], bool]:
    """
    Split text into (is_string, chunk) segments.

    Returns the segments and whether the text ends inside an unterminated
    string literal (in which case the last segment is that open string).
    """
    segments: List[Tuple[bool, str]] = []
    buf: List[str] = []
    in_string = False
    escaped = False

    for ch in text:
        if in_string:
            buf.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                segments.append((True, "".join(buf)))
                buf = []
                in_string = False
        elif ch == '"':
            if buf:
                segments.append((False, "".join(buf)))
            buf = [ch]
            in_string = True
        else:
            buf.append(ch)

    if buf:
        segments.append((in_string, "".join(buf)))
    return segments, in_string


def _map_structural(text: str, fn: Callable[[str], str]) -> str:
    """Apply fn to every chunk of text that is outside string literals"""
    segments, _ = _scan(text)
    return "".join(chunk if is_string else fn(chunk) for is_string, chunk in segments)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around or inside the text"""
    return _FENCE_RE.sub("", text).strip()


def extract_object(text: str) -> str:
    """
    Cut the text from the first '{' to its matching '}'.

    Leading and trailing prose is dropped. If the object never closes
    (truncated response) everything from the first '{' is returned.

    Raises:
        ParseError: If the text contains no '{' at all
    """
    start = text.find("{")
    if start < 0:
        raise ParseError("No JSON object found in response", raw=text)

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return text[start:]


def remove_duplicate_commas(text: str) -> str:
    """[1,, 2] -> [1, 2]"""
    return _map_structural(text, lambda chunk: _DUPLICATE_COMMA_RE.sub(",", chunk))


def remove_trailing_commas(text: str) -> str:
    """{"a": 1,} -> {"a": 1}"""
    return _map_structural(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def insert_missing_commas(text: str) -> str:
    """
    Insert commas between adjacent values that lack one.

    Covers adjacent strings ("a" "b"), a value followed by the next key on a
    new line, and adjacent objects/arrays (} {).
    """
    segments, _ = _scan(text)
    out: List[str] = []
    for i, (is_string, chunk) in enumerate(segments):
        if is_string:
            if i > 0 and segments[i - 1][0]:
                out.append(",")
            out.append(chunk)
            continue

        chunk = _ADJACENT_CONTAINERS_RE.sub(r"\1,\2\3", chunk)
        if i < len(segments) - 1 and segments[i + 1][0]:
            chunk = _VALUE_BEFORE_STRING_RE.sub(r"\1,\2", chunk)
        between_strings = (
            0 < i < len(segments) - 1
            and segments[i - 1][0]
            and segments[i + 1][0]
        )
        if between_strings and not chunk.strip():
            chunk = "," + chunk
        out.append(chunk)
    return "".join(out)


def close_unterminated_string(text: str) -> str:
    """Append a closing quote when the text ends inside a string literal"""
    segments, open_string = _scan(text)
    if not open_string:
        return text
    last = segments[-1][1]
    # A dangling escape would swallow the closing quote
    if last.endswith("\\") and not last.endswith("\\\\"):
        text = text[:-1]
    return text + '"'


def _open_containers(text: str) -> List[str]:
    stack: List[str] = []
    for is_string, chunk in _scan(text)[0]:
        if is_string:
            continue
        for ch in chunk:
            if ch in "{[":
                stack.append(ch)
            elif ch in "}]" and stack and _CLOSERS[stack[-1]] == ch:
                stack.pop()
    return stack


def drop_dangling_tail(text: str) -> str:
    """
    Make a truncated tail syntactically complete.

    A trailing ',' is dropped, a trailing ':' gets a null value, and an
    object key with no value gets ': null'.
    """
    text = text.rstrip()
    if text.endswith(","):
        return text[:-1].rstrip()
    if text.endswith(":"):
        return text + " null"

    segments, _ = _scan(text)
    stack = _open_containers(text)
    if segments and segments[-1][0] and stack and stack[-1] == "{":
        before = "".join(chunk for _, chunk in segments[:-1]).rstrip()
        if before.endswith("{") or before.endswith(","):
            return text + ": null"
    return text


def balance_brackets(text: str) -> str:
    """
    Balance braces and brackets outside string literals.

    Closers that do not match the innermost open container either close the
    containers above a matching opener or are dropped. Containers still open
    at the end are closed in reverse order.
    """
    stack: List[str] = []
    out: List[str] = []
    for is_string, chunk in _scan(text)[0]:
        if is_string:
            out.append(chunk)
            continue
        for ch in chunk:
            if ch in "{[":
                stack.append(ch)
                out.append(ch)
            elif ch in "}]":
                if stack and _CLOSERS[stack[-1]] == ch:
                    stack.pop()
                    out.append(ch)
                elif any(_CLOSERS[opener] == ch for opener in stack):
                    while _CLOSERS[stack[-1]] != ch:
                        out.append(_CLOSERS[stack.pop()])
                    stack.pop()
                    out.append(ch)
                # unmatched closer: dropped
            else:
                out.append(ch)

    while stack:
        out.append(_CLOSERS[stack.pop()])
    return "".join(out)


def repair_json(text: str) -> str:
    """Run every repair pass, in order, over an extracted JSON candidate"""
    text = remove_duplicate_commas(text)
    text = remove_trailing_commas(text)
    text = insert_missing_commas(text)
    text = close_unterminated_string(text)
    text = drop_dangling_tail(text)
    text = balance_brackets(text)
    return remove_trailing_commas(text)


def parse_json_object(response: str) -> Dict[str, Any]:
    """
    Parse the JSON object contained in a free-text response.

    The candidate is parsed as-is first; only if that fails are the repair
    passes applied.

    Raises:
        ParseError: If no JSON object can be recovered
    """
    if not response or not response.strip():
        raise ParseError("Empty response", raw=response)

    candidate = extract_object(strip_code_fences(response))

    try:
        data = json.loads(candidate, strict=False)
    except json.JSONDecodeError:
        repaired = repair_json(candidate)
        try:
            data = json.loads(repaired, strict=False)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Could not repair JSON response: {e}. Preview: {candidate[:300]}",
                raw=response
            ) from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}", raw=response)
    return data
