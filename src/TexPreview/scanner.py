"""Depth-counting scanner shared by every stage of the conversion.

All brace groups, optional arguments, begin/end pairs and top-level
separators are located here, so nesting is handled the same way in the
structural parser, the float converter, the math converter and the
diagram converter.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from re import Pattern
from typing import Callable, Iterable, List

_PAIRS = {"{": "}", "[": "]", "(": ")"}
_ENV_MARKER = re.compile(r"\\(begin|end)\{([^{}]*)\}")
_ARG_GAP = re.compile(r"[ \t]*(?:\n[ \t]*)?")
ITEM_PATTERN = re.compile(r"\\item(?![A-Za-z@])")
ALIGN_TAB = re.compile(r"&(?![a-zA-Z]+;|#\d+;)")
ROW_BREAK = "\\\\"


@dataclass
class EnvironmentMatch:
    name: str
    start: int
    end: int
    content: str
    options: str | None = None


def is_escaped(text: str, pos: int) -> bool:
    """True when the character at `pos` is preceded by an odd run of backslashes."""
    count = 0
    i = pos - 1
    while i >= 0 and text[i] == "\\":
        count += 1
        i -= 1
    return count % 2 == 1


def find_matching(text: str, pos: int) -> int:
    """Index of the delimiter closing the one at `pos`, or -1.

    Escaped characters are skipped. For `[` and `(` the closer is ignored
    while inside a brace group, so `[caption={a]b}]` stays intact.
    """
    opener = text[pos]
    closer = _PAIRS[opener]
    depth = 0
    braces = 0
    i = pos
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if opener != "{" and ch == "{":
            braces += 1
        elif opener != "{" and ch == "}":
            braces = max(braces - 1, 0)
        elif braces == 0 and ch == opener:
            depth += 1
        elif braces == 0 and ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _skip_gap(text: str, pos: int) -> int:
    return _ARG_GAP.match(text, pos).end()


def read_group(text: str, pos: int, opener: str = "{") -> tuple[str | None, int]:
    """Read a delimited group starting at or after `pos` (spaces allowed)."""
    start = _skip_gap(text, pos)
    if start >= len(text) or text[start] != opener:
        return None, pos
    close = find_matching(text, start)
    if close == -1:
        return None, pos
    return text[start + 1 : close], close + 1


def read_optional(text: str, pos: int) -> tuple[str | None, int]:
    return read_group(text, pos, "[")


def read_args(text: str, pos: int, count: int) -> tuple[List[str], int]:
    """Read up to `count` required brace arguments."""
    args: List[str] = []
    for _ in range(count):
        value, new_pos = read_group(text, pos)
        if value is None:
            break
        args.append(value)
        pos = new_pos
    return args, pos


def command_pattern(name: str) -> Pattern[str]:
    suffix = r"(?![A-Za-z@])" if name[-1].isalpha() else ""
    return re.compile("\\\\" + re.escape(name) + suffix)


def extract_command(text: str, name: str) -> tuple[str | None, str]:
    """Remove the first `\\name[..]{arg}` and return (arg, remaining text)."""
    pattern = command_pattern(name)
    for match in pattern.finditer(text):
        if is_escaped(text, match.start()):
            continue
        _, pos = read_optional(text, match.end())
        value, end = read_group(text, pos)
        if value is None:
            return None, text[: match.start()] + text[match.end() :]
        return value, text[: match.start()] + text[end:]
    return None, text


def replace_commands(
    text: str,
    name: str,
    render: Callable[[List[str], str | None], str],
    nargs: int = 1,
    optional: bool = True,
) -> str:
    """Replace every `\\name[opt]{a1}..{an}` with render(args, opt).

    Occurrences with fewer than `nargs` brace arguments are left untouched.
    """
    pattern = command_pattern(name)
    parts: List[str] = []
    pos = 0
    while True:
        match = pattern.search(text, pos)
        if not match:
            break
        if is_escaped(text, match.start()):
            parts.append(text[pos : match.end()])
            pos = match.end()
            continue
        opt = None
        cursor = match.end()
        if optional:
            opt, cursor = read_optional(text, cursor)
        args, cursor = read_args(text, cursor, nargs)
        if len(args) < nargs:
            parts.append(text[pos : match.end()])
            pos = match.end()
            continue
        parts.append(text[pos : match.start()])
        parts.append(render(args, opt))
        pos = cursor
    parts.append(text[pos:])
    return "".join(parts)


def _names_pattern(names: Iterable[str]) -> Pattern[str]:
    ordered = sorted(set(names), key=len, reverse=True)
    return re.compile(r"\\begin\{(" + "|".join(re.escape(n) for n in ordered) + r")\}")


def _find_end(text: str, name: str, pos: int) -> tuple[int, int] | None:
    marker = re.compile(r"\\(begin|end)\{" + re.escape(name) + r"\}")
    depth = 1
    for match in marker.finditer(text, pos):
        if is_escaped(text, match.start()):
            continue
        depth += 1 if match.group(1) == "begin" else -1
        if depth == 0:
            return match.start(), match.end()
    return None


def find_environment(
    text: str, names: str | Iterable[str], start: int = 0, options: bool = True
) -> EnvironmentMatch | None:
    """Find the first outermost environment among `names` at or after `start`."""
    if isinstance(names, str):
        names = [names]
    begin = _names_pattern(names)
    pos = start
    while True:
        match = begin.search(text, pos)
        if not match:
            return None
        if is_escaped(text, match.start()):
            pos = match.end()
            continue
        name = match.group(1)
        close = _find_end(text, name, match.end())
        if close is None:
            logging.warning("Unterminated environment '%s' left as text", name)
            pos = match.end()
            continue
        body_start = match.end()
        opt = None
        if options and text.startswith("[", body_start):
            bracket = find_matching(text, body_start)
            if bracket != -1 and bracket < close[0]:
                opt = text[body_start + 1 : bracket]
                body_start = bracket + 1
        return EnvironmentMatch(
            name=name,
            start=match.start(),
            end=close[1],
            content=text[body_start : close[0]],
            options=opt,
        )


def replace_environments(
    text: str,
    names: str | Iterable[str],
    render: Callable[[EnvironmentMatch], str],
    options: bool = True,
) -> str:
    """Replace outermost environments left to right in one pass.

    All names share one scan so callers that number their output see the
    environments in source order. Nested content is left to `render`.
    """
    names = [names] if isinstance(names, str) else list(names)
    if not names:
        return text
    parts: List[str] = []
    pos = 0
    while True:
        match = find_environment(text, names, pos, options=options)
        if match is None:
            break
        parts.append(text[pos : match.start])
        parts.append(render(match))
        pos = match.end
    parts.append(text[pos:])
    return "".join(parts)


def split_top_level(text: str, sep: str | Pattern[str], brackets: str = "{}") -> List[str]:
    """Split on `sep` only outside groups, environments and escapes."""
    opens = brackets[0::2]
    closes = brackets[1::2]
    pattern = sep if isinstance(sep, re.Pattern) else re.compile(re.escape(sep))
    parts: List[str] = []
    depth = 0
    env_depth = 0
    last = 0
    i = 0
    n = len(text)
    while i < n:
        if depth == 0 and env_depth == 0:
            match = pattern.match(text, i)
            if match and match.end() > i:
                parts.append(text[last:i])
                i = last = match.end()
                continue
        ch = text[i]
        if ch == "\\":
            marker = _ENV_MARKER.match(text, i)
            if marker:
                env_depth += 1 if marker.group(1) == "begin" else -1
                env_depth = max(env_depth, 0)
                i = marker.end()
                continue
            i += 2
            continue
        if ch in opens:
            depth += 1
        elif ch in closes and depth > 0:
            depth -= 1
        i += 1
    parts.append(text[last:])
    return parts


def split_items(text: str) -> List[tuple[str | None, str]]:
    """Split list content on top-level `\\item`, returning (label, body) pairs."""
    chunks = split_top_level(text, ITEM_PATTERN)
    items: List[tuple[str | None, str]] = []
    for chunk in chunks[1:]:
        label, pos = read_group(chunk, 0, "[")
        body = chunk[pos:] if label is not None else chunk
        items.append((label, body.strip()))
    return items


def count_environments(text: str) -> dict[str, tuple[int, int]]:
    """Begin/end counts per environment name, in order of first appearance."""
    counts: dict[str, list[int]] = {}
    for match in _ENV_MARKER.finditer(text):
        if is_escaped(text, match.start()):
            continue
        entry = counts.setdefault(match.group(2), [0, 0])
        entry[0 if match.group(1) == "begin" else 1] += 1
    return {name: (begins, ends) for name, (begins, ends) in counts.items()}


def parse_keyval(text: str | None) -> dict[str, str | bool]:
    """Parse `key=value, flag` option lists; braces around values are dropped."""
    result: dict[str, str | bool] = {}
    if not text:
        return result
    for part in split_top_level(text, ","):
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            key, value = part.split("=", 1)
            value = value.strip()
            if value.startswith("{") and value.endswith("}"):
                value = value[1:-1]
            result[key.strip()] = value.strip()
        else:
            result[part] = True
    return result
