"""
Restricted evaluator for JavaScript data literals found in upstream markup.

Only arrays, objects, strings, numbers and the keywords true/false/null/
undefined/NaN/Infinity are recognised. Anything that would need a script
engine (calls, operators, identifiers) is rejected with SandboxError, as is
input that exceeds the nesting limit or the wall-clock budget.
"""
from __future__ import annotations

import re
import time
from typing import Any

from perfdesk.errors import SandboxError


MAX_DEPTH = 64
_DEADLINE_CHECK_EVERY = 4096

_NUMBER_RE = re.compile(
    r"[+-]?(?:0[xX][0-9a-fA-F]+|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d+)?)"
)
_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")
_KEYWORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": float("nan"),
    "Infinity": float("inf"),
}
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class LiteralParser:
    def __init__(self, text: str, pos: int = 0, timeout_ms: float = 50):
        self.text = text
        self.pos = pos
        self.depth = 0
        self.deadline = time.monotonic() + timeout_ms / 1000.0

    def parse(self) -> Any:
        """Parse one value that must span the rest of the text."""
        value = self.parse_value()
        self._skip()
        if self.pos < len(self.text):
            self._fail("unexpected trailing content")
        return value

    def parse_value(self) -> Any:
        self._check_deadline()
        self._skip()
        if self.pos >= len(self.text):
            self._fail("unexpected end of input")

        ch = self.text[self.pos]
        if ch == "[":
            return self._array()
        if ch == "{":
            return self._object()
        if ch in "\"'":
            return self._string()
        if ch in "+-.0123456789":
            return self._number()

        word = self._identifier()
        if word in _KEYWORDS:
            return _KEYWORDS[word]
        self._fail(f"unsupported token {word!r}")

    def _fail(self, reason: str):
        raise SandboxError(
            f"Series literal rejected: {reason} at offset {self.pos}",
            {"offset": self.pos},
        )

    def _check_deadline(self) -> None:
        if time.monotonic() > self.deadline:
            raise SandboxError(
                "Series literal evaluation exceeded its time budget",
                {"offset": self.pos},
            )

    def _skip(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    self._fail("unterminated comment")
                self.pos = end + 2
            else:
                break

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            self._fail("nesting too deep")

    def _expect_separator(self, closing: str) -> bool:
        """Consume ',' or the closing bracket; True when the container ended."""
        self._skip()
        if self.pos >= len(self.text):
            self._fail("unexpected end of input")
        ch = self.text[self.pos]
        if ch == ",":
            self.pos += 1
            return False
        if ch == closing:
            self.pos += 1
            return True
        self._fail(f"expected ',' or {closing!r}")

    def _array(self) -> list:
        self._enter()
        self.pos += 1
        items: list = []
        while True:
            self._skip()
            if self.text.startswith("]", self.pos):
                self.pos += 1
                break
            if self.text.startswith(",", self.pos):
                # elision, e.g. [1,,2]
                items.append(None)
                self.pos += 1
                continue
            items.append(self.parse_value())
            if self._expect_separator("]"):
                break
        self.depth -= 1
        return items

    def _object(self) -> dict:
        self._enter()
        self.pos += 1
        result: dict = {}
        while True:
            self._skip()
            if self.text.startswith("}", self.pos):
                self.pos += 1
                break
            key = self._key()
            self._skip()
            if not self.text.startswith(":", self.pos):
                self._fail("expected ':'")
            self.pos += 1
            result[key] = self.parse_value()
            if self._expect_separator("}"):
                break
        self.depth -= 1
        return result

    def _key(self) -> str:
        if self.pos >= len(self.text):
            self._fail("unexpected end of input")
        ch = self.text[self.pos]
        if ch in "\"'":
            return self._string()
        if ch in "+-.0123456789":
            number = self._number()
            try:
                return str(int(number)) if float(number).is_integer() else str(number)
            except (OverflowError, ValueError):
                self._fail("number key out of range")
        return self._identifier()

    def _identifier(self) -> str:
        match = _IDENTIFIER_RE.match(self.text, self.pos)
        if not match:
            self._fail(f"unexpected character {self.text[self.pos]!r}")
        self.pos = match.end()
        return match.group(0)

    def _number(self) -> int | float:
        text = self.text
        sign = ""
        if text[self.pos] in "+-":
            sign = text[self.pos]
            if text.startswith("Infinity", self.pos + 1):
                self.pos += 1 + len("Infinity")
                return float("-inf") if sign == "-" else float("inf")

        match = _NUMBER_RE.match(text, self.pos)
        if not match:
            self._fail("malformed number")
        self.pos = match.end()
        raw = match.group(0).replace("_", "")
        digits = raw.lstrip("+-")

        try:
            if digits[:2] in ("0x", "0X"):
                value = int(digits, 16)
                return -value if sign == "-" else value
            if "." in digits or "e" in digits or "E" in digits:
                return float(raw)
            return int(raw)
        except ValueError:
            # int() refuses decimal strings past the interpreter's digit limit
            self._fail("malformed number")

    def _string(self) -> str:
        text = self.text
        quote = text[self.pos]
        self.pos += 1
        chunks: list[str] = []
        start = self.pos
        scanned = 0
        while True:
            if self.pos >= len(text):
                self._fail("unterminated string")
            ch = text[self.pos]
            scanned += 1
            if scanned % _DEADLINE_CHECK_EVERY == 0:
                self._check_deadline()
            if ch == quote:
                chunks.append(text[start:self.pos])
                self.pos += 1
                return "".join(chunks)
            if ch == "\n":
                self._fail("line break inside string")
            if ch == "\\":
                chunks.append(text[start:self.pos])
                chunks.append(self._escape())
                start = self.pos
                continue
            self.pos += 1

    def _escape(self) -> str:
        text = self.text
        self.pos += 1
        if self.pos >= len(text):
            self._fail("unterminated escape")
        ch = text[self.pos]
        self.pos += 1

        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch == "\n":
            return ""
        if ch == "x":
            return chr(self._hex_digits(2))
        if ch == "u":
            if text.startswith("{", self.pos):
                end = text.find("}", self.pos)
                if end == -1:
                    self._fail("malformed unicode escape")
                digits = text[self.pos + 1:end]
                self.pos = end + 1
                try:
                    return chr(int(digits, 16))
                except ValueError:
                    self._fail("malformed unicode escape")
            return chr(self._hex_digits(4))
        return ch

    def _hex_digits(self, count: int) -> int:
        digits = self.text[self.pos:self.pos + count]
        if len(digits) != count:
            self._fail("malformed escape")
        try:
            value = int(digits, 16)
        except ValueError:
            self._fail("malformed escape")
        self.pos += count
        return value


def parse_literal(text: str, timeout_ms: float = 50) -> Any:
    """Evaluate a complete data literal, e.g. ``[{data: [["2024-01-01", 1.2]]}]``."""
    return LiteralParser(text, timeout_ms=timeout_ms).parse()
