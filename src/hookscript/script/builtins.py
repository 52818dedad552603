"""Builtin template functions and value semantics.

The builtins are pure: they compute values and never touch the process
environment, the filesystem or the log. Side effects are only reachable
through the control functions in functions.py.

Value semantics shared with the interpreter:

- truth(): False, None, zero and empty strings/collections are false;
  everything else (including payload models) is true.
- resolve_field(): mappings answer any key (missing keys give None). Payload
  models answer their declared fields, aliases and extra keys, also when
  spelled in CamelCase (``.Pusher.Email`` reads ``pusher.email``). None
  answers every field with None. Field access on anything else is an error.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from .errors import ScriptExecError
from .printf import sprint, sprintf, sprintln, to_text, type_name

_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")


def truth(value: Any) -> bool:
    """Whether a value counts as true in ``if``, ``with``, ``and``, ``or`` and ``not``."""
    if value is None:
        return False
    if isinstance(value, BaseModel):
        return True
    if isinstance(value, (bool, int, float)):
        return bool(value)
    if isinstance(value, (str, bytes, Mapping, Sequence)):
        return len(value) > 0
    return True


def _snake_case(name: str) -> str:
    """``HeadCommit`` -> ``head_commit``."""
    name = _ACRONYM_RE.sub(r"\1_\2", name)
    return _CAMEL_RE.sub(r"\1_\2", name).lower()


def _model_field(model: BaseModel, name: str):
    """Look up a field on a model by name, alias, extra key or CamelCase name."""
    fields = type(model).model_fields
    extra = model.model_extra or {}
    for candidate in (name, _snake_case(name)):
        if candidate in fields:
            return True, getattr(model, candidate)
        for field_name, info in fields.items():
            if info.alias == candidate:
                return True, getattr(model, field_name)
        if candidate in extra:
            return True, extra[candidate]
    return False, None


def resolve_field(value: Any, name: str, line: Optional[int] = None) -> Any:
    """Resolve ``value.name``.

    Args:
        value: The value the field is read from.
        name: The field or key name.
        line: Script line, for error messages.

    Returns:
        The field value.

    Raises:
        ScriptExecError: If ``value`` has no fields, or is a payload model
                         without that field.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value.get(name)
    if isinstance(value, BaseModel):
        found, field = _model_field(value, name)
        if found:
            return field
        raise ScriptExecError(
            f"can't evaluate field {name} in type {type(value).__name__}", line
        )
    raise ScriptExecError(f"can't evaluate field {name} in type {type_name(value)}", line)


# =============================================================================
# Comparison
# =============================================================================


def _kind(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "other"


def _equal(left: Any, right: Any) -> bool:
    left_kind, right_kind = _kind(left), _kind(right)
    if left_kind == "nil" or right_kind == "nil":
        return left is None and right is None
    if left_kind != right_kind:
        raise ScriptExecError(
            f"incompatible types for comparison: {type_name(left)} and {type_name(right)}"
        )
    if left_kind == "other":
        raise ScriptExecError(f"non-comparable type {type_name(left)}")
    return left == right


def eq(first: Any, *others: Any) -> bool:
    """True if ``first`` equals any of ``others``."""
    if not others:
        raise ScriptExecError("missing argument for comparison")
    return any(_equal(first, other) for other in others)


def ne(left: Any, right: Any) -> bool:
    return not _equal(left, right)


def _ordered(left: Any, right: Any) -> None:
    left_kind, right_kind = _kind(left), _kind(right)
    if left_kind != right_kind or left_kind not in ("number", "string"):
        raise ScriptExecError(
            f"incompatible types for comparison: {type_name(left)} and {type_name(right)}"
        )


def lt(left: Any, right: Any) -> bool:
    _ordered(left, right)
    return left < right


def le(left: Any, right: Any) -> bool:
    _ordered(left, right)
    return left <= right


def gt(left: Any, right: Any) -> bool:
    _ordered(left, right)
    return left > right


def ge(left: Any, right: Any) -> bool:
    _ordered(left, right)
    return left >= right


# =============================================================================
# Logic
# =============================================================================


def and_(first: Any, *rest: Any) -> Any:
    """Return the first false argument, or the last argument."""
    for value in (first,) + rest:
        if not truth(value):
            return value
    return value


def or_(first: Any, *rest: Any) -> Any:
    """Return the first true argument, or the last argument."""
    for value in (first,) + rest:
        if truth(value):
            return value
    return value


def not_(value: Any) -> bool:
    return not truth(value)


# =============================================================================
# Collections
# =============================================================================


def len_(value: Any) -> int:
    if isinstance(value, (str, Mapping, list, tuple)):
        return len(value)
    raise ScriptExecError(f"len of type {type_name(value)}")


def index(value: Any, *keys: Any) -> Any:
    """Index into mappings, lists and payload models, one key at a time.

    ``index .Payload.commits 0`` is ``commits[0]``; ``index .Payload "ref"``
    is the ``ref`` field. A missing mapping key gives None.
    """
    for key in keys:
        if value is None:
            raise ScriptExecError("index of untyped nil")
        if isinstance(value, (list, tuple, str)):
            if not isinstance(key, int) or isinstance(key, bool):
                raise ScriptExecError(f"cannot index slice with {type_name(key)}")
            if not 0 <= key < len(value):
                raise ScriptExecError(f"index out of range: {key}")
            value = value[key]
        elif isinstance(value, (Mapping, BaseModel)):
            if not isinstance(key, str):
                raise ScriptExecError(f"cannot index map with {type_name(key)}")
            value = resolve_field(value, key)
        else:
            raise ScriptExecError(f"can't index item of type {type_name(value)}")
    return value


# =============================================================================
# Printing
# =============================================================================


def print_(*values: Any) -> str:
    return sprint(values)


def printf(format_string: Any, *values: Any) -> str:
    return sprintf(to_text(format_string), values)


def println(*values: Any) -> str:
    return sprintln(values)


BUILTINS: Dict[str, Callable[..., Any]] = {
    "and": and_,
    "or": or_,
    "not": not_,
    "eq": eq,
    "ne": ne,
    "lt": lt,
    "le": le,
    "gt": gt,
    "ge": ge,
    "len": len_,
    "index": index,
    "print": print_,
    "printf": printf,
    "println": println,
}

# Builtins whose arguments are evaluated lazily, left to right
SHORT_CIRCUIT = frozenset({"and", "or"})
