"""Parse-with-recovery for structured (JSON) provider output.

Pipeline: strip markdown fences → slice the JSON payload → ``json.loads``
→ one bounded repair pass (lightweight clean-up, dropping a dangling
trailing fragment, closing unterminated strings and brackets) → schema
validation. Callers always supply the default used on failure, and get back
which failure happened instead of an exception.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class ParseFailure(str, Enum):
    EMPTY = "empty"
    INVALID_JSON = "invalid_json"
    SCHEMA_MISMATCH = "schema_mismatch"


@dataclass
class ParseResult(Generic[T]):
    """Either a parsed value (``failure is None``) or the caller's default."""
    value: T
    failure: ParseFailure | None = None
    repaired: bool = False
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


# ---------------------------------------------------------------------------
# Text clean-up
# ---------------------------------------------------------------------------

_CLOSERS = {"{": "}", "[": "]"}


def strip_fences(raw: str) -> str:
    """Remove markdown code fences."""
    return re.sub(r"```(?:json)?|```", "", raw).strip()


def _payload(text: str) -> str:
    """Slice from the first opening bracket to the last matching closer."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closer = _CLOSERS[text[start]]
    end = text.rfind(closer)
    if end > start:
        return text[start:end + 1]
    return text[start:]


def _scan(text: str) -> tuple[list[str], bool]:
    """Return the stack of unclosed brackets and whether a string is left open."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
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
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]" and stack and _CLOSERS[stack[-1]] == ch:
            stack.pop()
    return stack, in_string


def _drop_dangling(text: str, in_object: bool) -> str:
    """Cut a trailing incomplete key, ``"key":`` pair or comma."""
    txt = text.rstrip()
    txt = re.sub(r',?\s*"[^"]*"\s*:\s*$', "", txt)
    if in_object:
        # A bare string after a comma inside an object is a key without value.
        txt = re.sub(r',\s*"[^"]*"$', "", txt)
    return txt.rstrip().rstrip(",")


def repair_json(text: str) -> str | None:
    """Single bounded repair pass for truncated or slightly malformed JSON."""
    txt = text.strip()
    starts = [i for i in (txt.find("{"), txt.find("[")) if i != -1]
    if not starts:
        return None
    txt = txt[min(starts):]
    txt = txt.replace("“", '"').replace("”", '"')
    txt = re.sub(r",\s*([}\]])", r"\1", txt)

    stack, in_string = _scan(txt)
    if in_string:
        txt += '"'
    txt = _drop_dangling(txt, in_object=bool(stack) and stack[-1] == "{")
    stack, _ = _scan(txt)
    txt += "".join(_CLOSERS[c] for c in reversed(stack))
    return re.sub(r",\s*([}\]])", r"\1", txt)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def load_json(raw: str | None) -> tuple[Any, ParseFailure | None, bool]:
    """Return ``(data, failure, repaired)`` for raw provider text."""
    if raw is None or not raw.strip():
        return None, ParseFailure.EMPTY, False
    stripped = strip_fences(raw)
    try:
        return json.loads(_payload(stripped)), None, False
    except json.JSONDecodeError:
        pass

    repaired = repair_json(stripped)
    if repaired is not None:
        try:
            return json.loads(repaired), None, True
        except json.JSONDecodeError as e:
            logger.debug("JSON repair failed: %s", e)
    return None, ParseFailure.INVALID_JSON, False


def parse_structured(raw: str | None, model_cls: type[M], *, default: M) -> ParseResult[M]:
    """Parse *raw* into *model_cls*, falling back to *default* on any failure."""
    data, failure, repaired = load_json(raw)
    if failure is not None:
        logger.warning("Unparseable %s output (%s); using default", model_cls.__name__, failure.value)
        return ParseResult(value=default, failure=failure)
    try:
        value = model_cls.model_validate(data)
    except ValidationError as e:
        logger.warning("%s output failed validation; using default", model_cls.__name__)
        return ParseResult(value=default, failure=ParseFailure.SCHEMA_MISMATCH, detail=str(e))
    return ParseResult(value=value, repaired=repaired)


def parse_string_list(raw: str | None, *, default: list[str]) -> ParseResult[list[str]]:
    """Parse a JSON array of strings (e.g. extracted keywords)."""
    data, failure, repaired = load_json(raw)
    if failure is not None:
        return ParseResult(value=default, failure=failure)
    if not isinstance(data, list):
        return ParseResult(value=default, failure=ParseFailure.SCHEMA_MISMATCH)
    items = [str(x).strip() for x in data if isinstance(x, (str, int, float)) and str(x).strip()]
    return ParseResult(value=items, repaired=repaired)
