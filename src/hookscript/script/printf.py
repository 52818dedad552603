"""Value formatting for template output and log lines.

Scripts format values in three places: action output, the ``print`` family
of builtins, and the ``log``/``logf`` control functions. All of them go
through this module so a value always renders the same way:

- None renders as ``<nil>``
- Booleans render as ``true`` / ``false``
- Integral floats (JSON numbers such as ``5.0``) render without a fraction
- Mappings, sequences and payload models render as JSON

``sprintf`` implements printf-style directives: ``%v %s %q %d %x %X %o %b
%c %f %F %e %E %g %G %t %%`` with the usual flags, width and precision.
Formatting never fails: a missing operand renders as ``%!d(MISSING)``, a
mismatched operand as ``%!d(str=abc)`` and leftover operands are appended as
``%!(EXTRA ...)``.
"""

import json
import re
from typing import Any, List, Sequence

from pydantic import BaseModel

NIL_TEXT = "<nil>"

_DIRECTIVE_RE = re.compile(r"%([-+# 0]*)(\d*)(?:\.(\d*))?([a-zA-Z%])")


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return str(value)


def to_text(value: Any) -> str:
    """Render a single value as text.

    Args:
        value: Any value reachable from a script.

    Returns:
        The text form of the value.
    """
    if value is None:
        return NIL_TEXT
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=_json_default, ensure_ascii=False)
    return str(value)


def type_name(value: Any) -> str:
    if value is None:
        return "nil"
    return type(value).__name__


def sprint(values: Sequence[Any]) -> str:
    """Concatenate values, adding a space between operands when neither is a string."""
    out: List[str] = []
    for index, value in enumerate(values):
        if index > 0 and not isinstance(value, str) and not isinstance(values[index - 1], str):
            out.append(" ")
        out.append(to_text(value))
    return "".join(out)


def sprintln(values: Sequence[Any]) -> str:
    """Join values with single spaces and append a newline."""
    return " ".join(to_text(value) for value in values) + "\n"


def _bad_operand(verb: str, value: Any) -> str:
    return f"%!{verb}({type_name(value)}={to_text(value)})"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _format_directive(flags: str, width: str, precision, verb: str, value: Any) -> str:
    """Format one operand for one directive."""
    precision_spec = "" if precision is None else "." + (precision or "0")
    numeric_spec = "%" + flags + width + precision_spec
    string_spec = "%" + ("-" if "-" in flags else "") + width + precision_spec + "s"

    if verb in "vs":
        return string_spec % to_text(value)

    if verb == "q":
        if isinstance(value, str):
            return string_spec % json.dumps(value, ensure_ascii=False)
        if isinstance(value, int) and not isinstance(value, bool):
            return string_spec % ("'" + chr(value) + "'")
        return _bad_operand(verb, value)

    if verb == "t":
        if isinstance(value, bool):
            return string_spec % to_text(value)
        return _bad_operand(verb, value)

    if verb in "dxXoc" and isinstance(value, int) and not isinstance(value, bool):
        if verb == "c":
            return string_spec % chr(value)
        return (numeric_spec + verb) % value

    if verb == "b" and isinstance(value, int) and not isinstance(value, bool):
        digits = format(abs(value), "b")
        return string_spec % (("-" if value < 0 else "") + digits)

    if verb in "xX" and isinstance(value, str):
        digits = value.encode("utf-8").hex()
        return string_spec % (digits.upper() if verb == "X" else digits)

    if verb in "fFeEgG" and _is_number(value):
        return (numeric_spec + verb) % float(value)

    return _bad_operand(verb, value)


def sprintf(format_string: str, values: Sequence[Any]) -> str:
    """Format values according to a printf-style format string.

    Args:
        format_string: Text with ``%`` directives.
        values: Operands consumed left to right by the directives.

    Returns:
        The formatted text. Mismatches are rendered inline, never raised.
    """
    out: List[str] = []
    position = 0
    used = 0

    while position < len(format_string):
        percent = format_string.find("%", position)
        if percent == -1:
            out.append(format_string[position:])
            break

        out.append(format_string[position:percent])
        match = _DIRECTIVE_RE.match(format_string, percent)
        if match is None:
            if percent == len(format_string) - 1:
                out.append("%!(NOVERB)")
                break
            out.append("%")
            position = percent + 1
            continue

        flags, width, precision, verb = match.groups()
        position = match.end()

        if verb == "%":
            out.append("%")
            continue

        if used >= len(values):
            out.append(f"%!{verb}(MISSING)")
            continue

        value = values[used]
        try:
            out.append(_format_directive(flags, width, precision, verb, value))
        except (ValueError, OverflowError):
            # e.g. %c of a code point out of range, %f of a huge integer
            out.append(_bad_operand(verb, value))
        used += 1

    if used < len(values):
        extras = ", ".join(f"{type_name(value)}={to_text(value)}" for value in values[used:])
        out.append(f"%!(EXTRA {extras})")

    return "".join(out)
