"""Span-aware JSONC scanner and surgical editor.

Parses JSON with ``//`` and ``/* */`` comments and trailing commas into a
tree that remembers the source offsets of every value. Edits are expressed
as text splices on the original document so comments and formatting outside
the touched value are preserved byte for byte.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

_NUMBER = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_LITERALS = ("true", "false", "null")
_WHITESPACE = " \t\r\n﻿"
_PUNCTUATION = "{}[]:,"


class JsoncSyntaxError(ValueError):
    """Malformed JSONC input."""

    def __init__(self, message: str, offset: int):
        self.offset = offset
        super().__init__(f"{message} at offset {offset}")


@dataclass
class _Token:
    kind: str  # one of _PUNCTUATION, "string" or "literal"
    start: int
    end: int
    text: str


@dataclass
class JsonMember:
    """A ``"key": value`` pair inside an object node."""

    key: str
    start: int
    value: JsonNode

    @property
    def end(self) -> int:
        return self.value.end


@dataclass
class JsonNode:
    """A parsed value with its ``[start, end)`` span in the source text."""

    kind: str  # "object", "array", "string" or "literal"
    start: int
    end: int
    raw: str = ""
    members: list[JsonMember] = field(default_factory=list)
    items: list[JsonNode] = field(default_factory=list)

    def find(self, key: str) -> JsonMember | None:
        """Return the last member with ``key`` (the one JSON parsers honor)."""
        for member in reversed(self.members):
            if member.key == key:
                return member
        return None

    def to_python(self) -> Any:
        if self.kind == "object":
            return {m.key: m.value.to_python() for m in self.members}
        if self.kind == "array":
            return [item.to_python() for item in self.items]
        return json.loads(self.raw)


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]

        if ch in _WHITESPACE:
            i += 1
            continue

        if ch == "/" and i + 1 < length and text[i + 1] == "/":
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
            continue

        if ch == "/" and i + 1 < length and text[i + 1] == "*":
            close = text.find("*/", i + 2)
            if close == -1:
                raise JsoncSyntaxError("Unterminated block comment", i)
            i = close + 2
            continue

        if ch in _PUNCTUATION:
            tokens.append(_Token(ch, i, i + 1, ch))
            i += 1
            continue

        if ch == '"':
            j = i + 1
            while j < length:
                if text[j] == "\\":
                    j += 2
                    continue
                if text[j] == '"':
                    break
                if text[j] == "\n":
                    raise JsoncSyntaxError("Unterminated string", i)
                j += 1
            if j >= length:
                raise JsoncSyntaxError("Unterminated string", i)
            raw = text[i : j + 1]
            try:
                json.loads(raw)
            except json.JSONDecodeError as e:
                raise JsoncSyntaxError(f"Invalid string ({e.msg})", i + e.pos) from e
            tokens.append(_Token("string", i, j + 1, raw))
            i = j + 1
            continue

        literal = next((lit for lit in _LITERALS if text.startswith(lit, i)), None)
        if literal is not None:
            tokens.append(_Token("literal", i, i + len(literal), literal))
            i += len(literal)
            continue

        match = _NUMBER.match(text, i)
        if match:
            tokens.append(_Token("literal", i, match.end(), match.group()))
            i = match.end()
            continue

        raise JsoncSyntaxError(f"Unexpected character {ch!r}", i)

    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> _Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self, expected: str | None = None) -> _Token:
        token = self._peek()
        if token is None:
            raise JsoncSyntaxError("Unexpected end of input", len(self.text))
        if expected is not None and token.kind != expected:
            raise JsoncSyntaxError(f"Expected {expected!r}, found {token.text!r}", token.start)
        self.pos += 1
        return token

    def parse(self) -> JsonNode:
        node = self._value()
        trailing = self._peek()
        if trailing is not None:
            raise JsoncSyntaxError(f"Unexpected trailing {trailing.text!r}", trailing.start)
        return node

    def _value(self) -> JsonNode:
        token = self._next()
        if token.kind == "{":
            return self._object(token)
        if token.kind == "[":
            return self._array(token)
        if token.kind in ("string", "literal"):
            return JsonNode(token.kind, token.start, token.end, raw=token.text)
        raise JsoncSyntaxError(f"Unexpected {token.text!r}", token.start)

    def _object(self, open_token: _Token) -> JsonNode:
        node = JsonNode("object", open_token.start, open_token.end)
        while True:
            token = self._peek()
            if token is not None and token.kind == "}":
                node.end = self._next().end
                return node
            key_token = self._next("string")
            self._next(":")
            value = self._value()
            node.members.append(JsonMember(json.loads(key_token.text), key_token.start, value))
            separator = self._next()
            if separator.kind == "}":
                node.end = separator.end
                return node
            if separator.kind != ",":
                raise JsoncSyntaxError(f"Expected ',' or '}}', found {separator.text!r}", separator.start)

    def _array(self, open_token: _Token) -> JsonNode:
        node = JsonNode("array", open_token.start, open_token.end)
        while True:
            token = self._peek()
            if token is not None and token.kind == "]":
                node.end = self._next().end
                return node
            node.items.append(self._value())
            separator = self._next()
            if separator.kind == "]":
                node.end = separator.end
                return node
            if separator.kind != ",":
                raise JsoncSyntaxError(f"Expected ',' or ']', found {separator.text!r}", separator.start)


def parse_tree(text: str) -> JsonNode:
    """Parse JSONC text into a span-annotated tree."""
    return _Parser(text).parse()


def loads(text: str) -> Any:
    """Parse JSONC text into Python objects."""
    return parse_tree(text).to_python()


def detect_indent(text: str) -> str:
    """Return the first indentation unit used in ``text`` (two spaces by default)."""
    for line in text.split("\n"):
        stripped = line.lstrip(" \t")
        if stripped and len(stripped) != len(line):
            ws = line[: len(line) - len(stripped)]
            return "\t" if ws.startswith("\t") else ws
    return "  "


def _line_indent(text: str, pos: int) -> str:
    line_start = text.rfind("\n", 0, pos) + 1
    end = line_start
    while end < len(text) and text[end] in " \t":
        end += 1
    return text[line_start:end]


def _same_line(text: str, a: int, b: int) -> bool:
    return "\n" not in text[a:b]


def _serialize(value: Any, unit: str, base: str) -> str:
    dumped = json.dumps(value, indent=unit, ensure_ascii=False)
    return dumped.replace("\n", "\n" + base)


def _splice(text: str, start: int, end: int, replacement: str) -> str:
    return text[:start] + replacement + text[end:]


def _nest(path: list[str], value: Any) -> Any:
    for part in reversed(path):
        value = {part: value}
    return value


def _insert_member(text: str, obj: JsonNode, key: str, value: Any, unit: str) -> str:
    obj_indent = _line_indent(text, obj.start)

    if not obj.members:
        child_indent = obj_indent + unit
        member = json.dumps(key, ensure_ascii=False) + ": " + _serialize(value, unit, child_indent)
        inner = text[obj.start + 1 : obj.end - 1]
        if not inner.strip():
            return _splice(text, obj.start + 1, obj.end - 1, f"\n{child_indent}{member}\n{obj_indent}")
        return _splice(text, obj.start + 1, obj.start + 1, f"\n{child_indent}{member}")

    last = obj.members[-1]
    if _same_line(text, obj.start, last.start):
        child_indent = obj_indent + unit
    else:
        child_indent = _line_indent(text, last.start)
    member = json.dumps(key, ensure_ascii=False) + ": " + _serialize(value, unit, child_indent)

    # A trailing comma after the last member is kept in the same style.
    comma = _next_significant(text, last.end, obj.end - 1)
    if comma is not None and text[comma] == ",":
        return _splice(text, comma + 1, comma + 1, f"\n{child_indent}{member},")
    return _splice(text, last.end, last.end, f",\n{child_indent}{member}")


def _next_significant(text: str, start: int, end: int) -> int | None:
    """Index of the first character in ``[start, end)`` outside whitespace and comments."""
    i = start
    while i < end:
        if text[i] in _WHITESPACE:
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = end if newline == -1 else newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = end if close == -1 else close + 2
        else:
            return i
    return None


def set_value(text: str, path: list[str], value: Any) -> str:
    """Return ``text`` with the value at ``path`` set, creating parents as needed.

    Only the touched value (or the inserted member) changes; everything else,
    including comments, is carried over unchanged.
    """
    if not path:
        raise ValueError("Path must not be empty")
    if not text.strip():
        text = "{}"

    root = parse_tree(text)
    if root.kind != "object":
        raise JsoncSyntaxError("Root value must be an object", root.start)

    unit = detect_indent(text)
    node = root
    for index, part in enumerate(path):
        member = node.find(part)
        remaining = path[index + 1 :]

        if member is None:
            return _insert_member(text, node, part, _nest(remaining, value), unit)

        if not remaining or member.value.kind != "object":
            base = _line_indent(text, member.start)
            replacement = _serialize(_nest(remaining, value), unit, base)
            return _splice(text, member.value.start, member.value.end, replacement)

        node = member.value

    raise AssertionError("unreachable")


def remove_value(text: str, path: list[str]) -> str | None:
    """Return ``text`` with the member at ``path`` removed, or None if absent."""
    if not path or not text.strip():
        return None

    root = parse_tree(text)
    node = root
    for part in path[:-1]:
        if node.kind != "object":
            return None
        member = node.find(part)
        if member is None:
            return None
        node = member.value

    if node.kind != "object":
        return None

    index = next(
        (i for i in range(len(node.members) - 1, -1, -1) if node.members[i].key == path[-1]),
        None,
    )
    if index is None:
        return None

    members = node.members
    target = members[index]
    if index + 1 < len(members):
        return _splice(text, target.start, members[index + 1].start, "")
    if index > 0:
        return _splice(text, members[index - 1].end, target.end, "")
    return _splice(text, node.start + 1, node.end - 1, "")
