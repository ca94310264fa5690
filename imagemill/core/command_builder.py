"""Command builder — maps an operation and its parameters to tool arguments.

Pure functions only: no filesystem access and no process spawning. Every
user-supplied value is parsed and range-checked here, before anything can
reach the image tool, and is emitted as its own argument so no value is
ever interpreted by a shell.

Fragments (inserted between the input and output paths)::

    resize   -resize 800x600        (or 800x600! to force exact geometry)
    convert  (none; the output extension selects the format)
    filter   -colorspace Gray | -sepia-tone 80% | -blur 0x5 | ...
    crop     -crop 300x300+0+0
    text     -fill white -pointsize 24 -gravity center -annotate +0+0 TEXT
    rotate   -rotate 90

The annotation text is passed through verbatim as one argument. ImageMagick
itself still interprets it: text starting with ``@`` is read from the named
file, and percent escapes such as ``%w`` or ``%[EXIF:*]`` are expanded to
image properties. Callers exposing the text operation to untrusted users
should account for that.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from imagemill.core.errors import ValidationError
from imagemill.models.commands import CommandSpec
from imagemill.models.operations import FilterKind, OperationKind

logger = logging.getLogger(__name__)

MAX_DIMENSION = 16384
MAX_BLUR = 100.0
MAX_POINTSIZE = 1000
MAX_DEGREES = 360.0

DEFAULT_EXTENSION = "jpg"

GRAVITIES = frozenset({
    "northwest", "north", "northeast",
    "west", "center", "east",
    "southwest", "south", "southeast",
})

_FORMAT_RE = re.compile(r"^[a-z0-9]{1,10}$")
_COLOR_RE = re.compile(r"^(#[0-9a-fA-F]{3,16}|[a-zA-Z]+[0-9]*|(rgb|rgba|hsl|hsla)\([0-9.,% ]+\))$")
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})

_PURPOSES: dict[OperationKind, str] = {
    OperationKind.RESIZE: "resized",
    OperationKind.CONVERT: "converted",
    OperationKind.FILTER: "filtered",
    OperationKind.CROP: "cropped",
    OperationKind.ANNOTATE_TEXT: "text",
    OperationKind.ROTATE: "rotated",
}

_FILTER_FRAGMENTS: dict[FilterKind, list[str]] = {
    FilterKind.GRAYSCALE: ["-colorspace", "Gray"],
    FilterKind.SEPIA: ["-sepia-tone", "80%"],
    FilterKind.SHARPEN: ["-sharpen", "0x3"],
    FilterKind.EDGE: ["-edge", "1"],
    FilterKind.NEGATE: ["-negate"],
    FilterKind.CHARCOAL: ["-charcoal", "2"],
}


# ---------------------------------------------------------------------------
# Parameter parsing
# ---------------------------------------------------------------------------


def _parse_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{name} must be a number, got {value!r}") from None
    else:
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return number


def _number_param(
    params: Mapping[str, Any],
    name: str,
    default: float,
    minimum: float,
    maximum: float,
) -> float:
    number = _parse_number(name, params.get(name, default))
    if not minimum <= number <= maximum:
        raise ValidationError(
            f"{name} must be between {minimum:g} and {maximum:g}, got {number:g}"
        )
    return number


def _int_param(
    params: Mapping[str, Any],
    name: str,
    default: int,
    minimum: int,
    maximum: int,
) -> int:
    number = _number_param(params, name, default, minimum, maximum)
    if not number.is_integer():
        raise ValidationError(f"{name} must be a whole number, got {number:g}")
    return int(number)


def _bool_param(params: Mapping[str, Any], name: str, default: bool) -> bool:
    value = params.get(name, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() not in _FALSE_STRINGS


def _str_param(params: Mapping[str, Any], name: str, default: str) -> str:
    value = params.get(name, default)
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"{name} must be a string, got {value!r}")
    return str(value)


def _fmt(number: float) -> str:
    """Render a number for the tool without a trailing ``.0``."""
    return f"{number:g}"


def _signed(number: int) -> str:
    return f"+{number}" if number >= 0 else str(number)


# ---------------------------------------------------------------------------
# Per-operation fragments
# ---------------------------------------------------------------------------


def _resize(params: Mapping[str, Any]) -> list[str]:
    width = _int_param(params, "width", 800, 1, MAX_DIMENSION)
    height = _int_param(params, "height", 600, 1, MAX_DIMENSION)
    if "maintain_aspect_ratio" in params and "maintain" not in params:
        maintain = _bool_param(params, "maintain_aspect_ratio", True)
    else:
        maintain = _bool_param(params, "maintain", True)
    geometry = f"{width}x{height}" if maintain else f"{width}x{height}!"
    return ["-resize", geometry]


def _convert(params: Mapping[str, Any]) -> list[str]:
    output_format(params)
    return []


def _filter(params: Mapping[str, Any]) -> list[str]:
    name = _str_param(params, "filter", FilterKind.GRAYSCALE.value).strip().lower()
    try:
        kind = FilterKind(name)
    except ValueError:
        logger.info("Unknown filter %r, falling back to grayscale", name)
        kind = FilterKind.GRAYSCALE
    if kind is FilterKind.BLUR:
        amount = _number_param(params, "amount", 5, 0, MAX_BLUR)
        return ["-blur", f"0x{_fmt(amount)}"]
    return list(_FILTER_FRAGMENTS[kind])


def _crop(params: Mapping[str, Any]) -> list[str]:
    width = _int_param(params, "width", 300, 1, MAX_DIMENSION)
    height = _int_param(params, "height", 300, 1, MAX_DIMENSION)
    x = _int_param(params, "x", 0, 0, MAX_DIMENSION)
    y = _int_param(params, "y", 0, 0, MAX_DIMENSION)
    return ["-crop", f"{width}x{height}+{x}+{y}"]


def _annotate(params: Mapping[str, Any]) -> list[str]:
    text = _str_param(params, "text", "Watermark")
    if not text:
        raise ValidationError("text must not be empty")

    color = _str_param(params, "color", "white").strip()
    if not _COLOR_RE.match(color):
        raise ValidationError(f"color {color!r} is not a recognised colour")

    size = _int_param(params, "size", 24, 1, MAX_POINTSIZE)

    gravity = _str_param(params, "x", "center").strip().lower()
    if gravity not in GRAVITIES:
        raise ValidationError(
            f"x must be one of {', '.join(sorted(GRAVITIES))}, got {gravity!r}"
        )

    raw_offset = params.get("y", "center")
    if isinstance(raw_offset, str) and raw_offset.strip().lower() == "center":
        offset = 0
    else:
        offset = _int_param(params, "y", 0, -MAX_DIMENSION, MAX_DIMENSION)

    return [
        "-fill", color,
        "-pointsize", str(size),
        "-gravity", gravity,
        "-annotate", f"+0{_signed(offset)}",
        text,
    ]


def _rotate(params: Mapping[str, Any]) -> list[str]:
    degrees = _number_param(params, "degrees", 90, -MAX_DEGREES, MAX_DEGREES)
    return ["-rotate", _fmt(degrees)]


_BUILDERS = {
    OperationKind.RESIZE: _resize,
    OperationKind.CONVERT: _convert,
    OperationKind.FILTER: _filter,
    OperationKind.CROP: _crop,
    OperationKind.ANNOTATE_TEXT: _annotate,
    OperationKind.ROTATE: _rotate,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_operation(name: str | OperationKind) -> OperationKind:
    """Resolve an operation name, rejecting anything outside the fixed set."""
    if isinstance(name, OperationKind):
        return name
    try:
        return OperationKind(str(name).strip().lower())
    except ValueError:
        valid = ", ".join(kind.value for kind in OperationKind)
        raise ValidationError(
            f"unknown operation {name!r} (expected one of: {valid})"
        ) from None


def output_format(params: Mapping[str, Any]) -> str:
    """The target format of a ``convert`` request, lowercased and checked."""
    fmt = _str_param(params, "format", "png").strip().lower()
    if not _FORMAT_RE.match(fmt):
        raise ValidationError(f"format {fmt!r} is not a valid image format name")
    return fmt


def output_purpose(operation: OperationKind) -> str:
    """Suffix used when naming the output artifact of *operation*."""
    return _PURPOSES[operation]


def output_extension(operation: OperationKind, params: Mapping[str, Any]) -> str:
    """File extension of the output artifact; only ``convert`` changes it."""
    if operation is OperationKind.CONVERT:
        return output_format(params)
    return DEFAULT_EXTENSION


def build_fragment(
    operation: str | OperationKind, params: Mapping[str, Any] | None = None
) -> list[str]:
    """Validate *params* and return the argument fragment for *operation*.

    Raises
    ------
    ValidationError
        If the operation is unknown or any parameter is malformed or out
        of range.
    """
    kind = parse_operation(operation)
    return _BUILDERS[kind](params or {})


def build(
    operation: str | OperationKind,
    params: Mapping[str, Any] | None,
    *,
    input_path: Path,
    output_path: Path,
    executable: str = "convert",
) -> CommandSpec:
    """Build the complete, validated invocation for one transformation."""
    return CommandSpec(
        executable=executable,
        arguments=build_fragment(operation, params),
        input_path=input_path,
        output_path=output_path,
    )
