"""
Parsing of generated implementor fragments.

A generated fragment script assigns one array of markup strings per crate::

    (function() {var implementors = {};
    implementors["futures"] = ["impl&lt;T&gt; <a class='trait' ...>Drop</a> for ...",];
    ...
    })()

``parse_fragment_script`` pulls those arrays out; ``parse_descriptor`` turns
one markup string into an ``ImplementorDescriptor``. The markup is produced
by a trusted generator, so parsing is lenient: anything that does not look
like an impl header raises ``FragmentParseError`` rather than guessing.
"""

from __future__ import annotations

import json
import re
from pathlib import Path, PurePath

from bs4 import BeautifulSoup, NavigableString, Tag

from implspine.core.errors import FragmentParseError
from implspine.models import ImplementorDescriptor

_ASSIGNMENT = re.compile(r"""implementors\[\s*(?P<key>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')\s*\]\s*=\s*\[""")
_TRAIT_FILE = re.compile(r"^trait\.(?P<name>[^.]+)\.js$")
_OPENERS = {"<", "(", "["}
_CLOSERS = {">", ")", "]"}
_ESCAPE_OR_QUOTE = re.compile(r'\\(.)|"', re.DOTALL)


def _json_escape(match: re.Match) -> str:
    escaped = match.group(1)
    if escaped is None:
        return '\\"'
    if escaped == "'":
        return "'"
    return match.group(0)


def _decode_js_string(literal: str) -> str:
    """Decode a single- or double-quoted JS string literal."""
    body = _ESCAPE_OR_QUOTE.sub(_json_escape, literal[1:-1])
    try:
        return json.loads(f'"{body}"')
    except json.JSONDecodeError as e:
        raise FragmentParseError(f"Invalid string literal: {literal[:40]!r}", cause=e)


def _scan_string(text: str, pos: int) -> int:
    """Return the index just past the string literal starting at ``pos``."""
    quote = text[pos]
    i = pos + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        i += 1
    raise FragmentParseError(f"Unterminated string literal at offset {pos}")


def _read_string_array(text: str, pos: int) -> tuple[list[str], int]:
    """Read string elements from just after ``[`` up to the closing ``]``."""
    values: list[str] = []
    i = pos
    expect_value = True
    while i < len(text):
        char = text[i]
        if char.isspace():
            i += 1
        elif char == "]":
            return values, i + 1
        elif char == ",":
            if expect_value and values:
                raise FragmentParseError(f"Empty array element at offset {i}")
            expect_value = True
            i += 1
        elif char in "\"'" and expect_value:
            end = _scan_string(text, i)
            values.append(_decode_js_string(text[i:end]))
            expect_value = False
            i = end
        else:
            raise FragmentParseError(f"Unexpected {char!r} in implementors array at offset {i}")
    raise FragmentParseError("Unterminated implementors array")


def parse_fragment_script(text: str) -> dict[str, list[str]]:
    """Extract ``{crate: [markup, ...]}`` from a generated fragment script.

    Later assignments to the same crate replace earlier ones, as they would
    when the script runs.

    Raises:
        FragmentParseError: If no assignment is found or an array is malformed
    """
    payload: dict[str, list[str]] = {}
    pos = 0
    while True:
        match = _ASSIGNMENT.search(text, pos)
        if match is None:
            break
        crate = _decode_js_string(match.group("key"))
        values, pos = _read_string_array(text, match.end())
        payload[crate] = values

    if not payload:
        raise FragmentParseError("No implementors assignment found in fragment script")
    return payload


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on ``separator`` outside of ``<>``, ``()`` and ``[]`` nesting."""
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        char = text[i]
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and depth > 0:
            # "->" in fn types is not a closing bracket
            if not (char == ">" and i > 0 and text[i - 1] == "-"):
                depth -= 1
        elif depth == 0 and text.startswith(separator, i):
            parts.append(text[start:i].strip())
            i += len(separator)
            start = i
            continue
        i += 1
    tail = text[start:].strip()
    if tail:
        parts.append(tail)
    return [part for part in parts if part]


def _split_generics(header: str) -> tuple[tuple[str, ...], str]:
    """Split ``<T, E> Drop for X`` into generics and the rest."""
    if not header.startswith("<"):
        return (), header
    depth = 0
    for i, char in enumerate(header):
        if char == "<":
            depth += 1
        elif char == ">" and header[i - 1] != "-":
            depth -= 1
            if depth == 0:
                return tuple(split_top_level(header[1:i])), header[i + 1 :].strip()
    raise FragmentParseError(f"Unbalanced generics in impl header: {header!r}")


def _top_level_anchors(soup: BeautifulSoup) -> list[Tag]:
    """Links outside any angle-bracket nesting, in document order."""
    anchors: list[Tag] = []
    depth = 0
    previous = ""
    for node in soup.descendants:
        if isinstance(node, NavigableString):
            for char in str(node):
                if char == "<":
                    depth += 1
                elif char == ">" and previous != "-":
                    depth -= 1
                previous = char
        elif isinstance(node, Tag) and node.name == "a" and depth == 0:
            anchors.append(node)
    return anchors


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace("\xa0", " ")).strip()


def parse_descriptor(markup: str, trait_path: str | None = None) -> ImplementorDescriptor:
    """Parse one implementor markup string.

    Args:
        markup: Generated markup, e.g. ``impl&lt;T&gt; <a class='trait' ...>Drop</a> for ...``
        trait_path: Fallback trait path when the markup has no titled trait link

    Raises:
        FragmentParseError: If the markup is not an ``impl ... for ...`` header
    """
    soup = BeautifulSoup(markup, "html.parser")

    constraints: tuple[str, ...] = ()
    where = soup.find("span", class_="where")
    if where is not None:
        where_text = _normalize(where.get_text())
        if where_text.startswith("where"):
            where_text = where_text[len("where") :]
        constraints = tuple(split_top_level(where_text))
        where.extract()

    text = _normalize(soup.get_text())
    if not text.startswith("impl"):
        raise FragmentParseError(f"Not an impl header: {text[:60]!r}")

    generics, rest = _split_generics(text[len("impl") :].strip())
    halves = split_top_level(f" {rest} ", separator=" for ")
    if len(halves) != 2:
        raise FragmentParseError(f"Expected 'Trait for Type' in impl header: {text[:60]!r}")
    trait_text, type_text = halves

    anchors = _top_level_anchors(soup)
    trait_index = next((i for i, a in enumerate(anchors) if "trait" in (a.get("class") or [])), None)
    trait_anchor = anchors[trait_index] if trait_index is not None else None
    if trait_anchor is not None and trait_anchor.get("title"):
        resolved_trait = trait_anchor["title"]
        if trait_text.startswith("!"):
            resolved_trait = "!" + resolved_trait
    else:
        resolved_trait = trait_path or trait_text

    type_path = type_text
    following = anchors[trait_index + 1 :] if trait_index is not None else anchors
    for anchor in following:
        label = _normalize(anchor.get_text())
        if anchor.get("title") and label and type_text.startswith(label):
            type_path = anchor["title"] + type_text[len(label) :]
            break

    return ImplementorDescriptor(
        trait_path=resolved_trait,
        type_path=type_path,
        constraints=constraints,
        generics=generics,
        markup=markup,
    )


def trait_path_from_location(path: Path | str) -> str:
    """Map ``implementors/core/ops/trait.Drop.js`` to ``core::ops::Drop``.

    Raises:
        FragmentParseError: If the file name is not ``trait.<Name>.js``
    """
    parts = PurePath(path).parts
    match = _TRAIT_FILE.match(parts[-1]) if parts else None
    if match is None:
        raise FragmentParseError(f"Not a trait fragment file: {path}")

    modules = list(parts[:-1])
    if "implementors" in modules:
        last = len(modules) - 1 - modules[::-1].index("implementors")
        modules = modules[last + 1 :]
    elif PurePath(path).is_absolute():
        modules = []
    return "::".join(modules + [match.group("name")])


__all__ = [
    "parse_descriptor",
    "parse_fragment_script",
    "split_top_level",
    "trait_path_from_location",
]
