"""Operation and filter enumerations."""

from __future__ import annotations

from enum import Enum


class OperationKind(str, Enum):
    """The six supported transformations."""

    RESIZE = "resize"
    CONVERT = "convert"
    FILTER = "filter"
    CROP = "crop"
    ANNOTATE_TEXT = "text"
    ROTATE = "rotate"


class FilterKind(str, Enum):
    """Named filters available to the ``filter`` operation."""

    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    BLUR = "blur"
    SHARPEN = "sharpen"
    EDGE = "edge"
    NEGATE = "negate"
    CHARCOAL = "charcoal"
