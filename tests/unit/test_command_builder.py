"""Tests for the command builder — argument fragments and parameter validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from imagemill.core import command_builder
from imagemill.core.command_builder import (
    build,
    build_fragment,
    output_extension,
    output_purpose,
    parse_operation,
)
from imagemill.core.errors import ValidationError
from imagemill.models.operations import OperationKind

SHELL_METACHARACTERS = set(";|&$`'\"<>\\\n")

INPUT = Path("/data/uploads/1-in.jpg")
OUTPUT = Path("/data/output/2-out.jpg")


class TestDefaults:
    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_default_argv_is_well_formed(self, operation: OperationKind):
        spec = build(operation, {}, input_path=INPUT, output_path=OUTPUT, executable="magick")
        argv = spec.argv
        assert argv[0] == "magick"
        assert argv[1] == str(INPUT)
        assert argv[-1] == str(OUTPUT)
        assert all(isinstance(arg, str) and arg for arg in argv)

    def test_default_fragments(self):
        assert build_fragment("resize") == ["-resize", "800x600"]
        assert build_fragment("convert") == []
        assert build_fragment("filter") == ["-colorspace", "Gray"]
        assert build_fragment("crop") == ["-crop", "300x300+0+0"]
        assert build_fragment("rotate") == ["-rotate", "90"]
        assert build_fragment("text") == [
            "-fill", "white",
            "-pointsize", "24",
            "-gravity", "center",
            "-annotate", "+0+0",
            "Watermark",
        ]


class TestShellSafety:
    HOSTILE = "it's \"quoted\"; rm -rf / `whoami` $(id) | cat"

    def test_text_is_one_opaque_argument(self):
        fragment = build_fragment("text", {"text": self.HOSTILE})
        assert fragment[-1] == self.HOSTILE
        assert fragment.count(self.HOSTILE) == 1

    def test_no_metacharacters_outside_the_text_token(self):
        fragment = build_fragment("text", {"text": self.HOSTILE})
        for arg in fragment[:-1]:
            assert not SHELL_METACHARACTERS & set(arg), arg

    @pytest.mark.parametrize("operation", list(OperationKind))
    def test_defaults_contain_no_metacharacters(self, operation: OperationKind):
        for arg in build_fragment(operation, {}):
            assert not SHELL_METACHARACTERS & set(arg), arg

    @pytest.mark.parametrize("text", ["@/etc/hostname", "%[EXIF:*]", "100% %w"])
    def test_text_with_tool_escapes_is_passed_verbatim(self, text: str):
        assert build_fragment("text", {"text": text})[-1] == text

    @pytest.mark.parametrize("color", ["white; rm -rf /", "-fill", "$(id)", "red`x`"])
    def test_hostile_color_rejected(self, color: str):
        with pytest.raises(ValidationError):
            build_fragment("text", {"color": color})

    @pytest.mark.parametrize("value", ["10; ls", "`id`", "1e3x"])
    def test_hostile_numeric_strings_rejected(self, value: str):
        with pytest.raises(ValidationError):
            build_fragment("resize", {"width": value})


class TestResize:
    def test_forced_geometry_when_aspect_not_maintained(self):
        fragment = build_fragment(
            "resize", {"width": 200, "height": 100, "maintain": False}
        )
        assert fragment == ["-resize", "200x100!"]

    def test_string_false_disables_aspect(self):
        fragment = build_fragment(
            "resize", {"width": "200", "height": "100", "maintain": "false"}
        )
        assert fragment == ["-resize", "200x100!"]

    def test_long_form_alias(self):
        fragment = build_fragment(
            "resize", {"width": 200, "height": 100, "maintain_aspect_ratio": False}
        )
        assert fragment == ["-resize", "200x100!"]

    def test_bounding_box_when_aspect_maintained(self):
        assert build_fragment("resize", {"width": 200, "height": 100}) == [
            "-resize",
            "200x100",
        ]

    @pytest.mark.parametrize("width", [0, -5, 20000, "12.5", "abc", True])
    def test_invalid_width(self, width):
        with pytest.raises(ValidationError):
            build_fragment("resize", {"width": width})


class TestConvert:
    def test_extension_follows_format(self):
        assert output_extension(OperationKind.CONVERT, {"format": "WebP"}) == "webp"
        assert build_fragment("convert", {"format": "webp"}) == []

    def test_default_format_is_png(self):
        assert output_extension(OperationKind.CONVERT, {}) == "png"

    @pytest.mark.parametrize("fmt", ["../etc", "png/x", "", "a" * 11, "p n g"])
    def test_invalid_format(self, fmt: str):
        with pytest.raises(ValidationError):
            build_fragment("convert", {"format": fmt})

    def test_other_operations_write_jpg(self):
        assert output_extension(OperationKind.RESIZE, {"format": "png"}) == "jpg"


class TestFilter:
    @pytest.mark.parametrize(
        "kind, fragment",
        [
            ("grayscale", ["-colorspace", "Gray"]),
            ("sepia", ["-sepia-tone", "80%"]),
            ("blur", ["-blur", "0x5"]),
            ("sharpen", ["-sharpen", "0x3"]),
            ("edge", ["-edge", "1"]),
            ("negate", ["-negate"]),
            ("charcoal", ["-charcoal", "2"]),
        ],
    )
    def test_known_filters(self, kind: str, fragment: list[str]):
        assert build_fragment("filter", {"filter": kind}) == fragment

    @pytest.mark.parametrize("kind", ["posterize", "", "GRAYSCALE-ish", "; rm"])
    def test_unknown_filter_falls_back_to_grayscale(self, kind: str):
        assert build_fragment("filter", {"filter": kind}) == ["-colorspace", "Gray"]

    def test_blur_amount(self):
        assert build_fragment("filter", {"filter": "blur", "amount": "2.5"}) == [
            "-blur",
            "0x2.5",
        ]

    @pytest.mark.parametrize("amount", [-1, 101, "nan", "inf"])
    def test_blur_amount_out_of_range(self, amount):
        with pytest.raises(ValidationError):
            build_fragment("filter", {"filter": "blur", "amount": amount})

    def test_amount_ignored_for_other_filters(self):
        assert build_fragment("filter", {"filter": "negate", "amount": "bogus"}) == [
            "-negate"
        ]


class TestCrop:
    def test_geometry_with_offset(self):
        fragment = build_fragment("crop", {"width": 50, "height": 50, "x": 10, "y": 20})
        assert fragment == ["-crop", "50x50+10+20"]

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            build_fragment("crop", {"x": -1})


class TestAnnotateText:
    def test_custom_parameters(self):
        fragment = build_fragment(
            "text",
            {"text": "Hello", "color": "#ff0000", "size": "36", "x": "SouthEast", "y": 12},
        )
        assert fragment == [
            "-fill", "#ff0000",
            "-pointsize", "36",
            "-gravity", "southeast",
            "-annotate", "+0+12",
            "Hello",
        ]

    def test_negative_vertical_offset(self):
        fragment = build_fragment("text", {"y": -10})
        assert fragment[fragment.index("-annotate") + 1] == "+0-10"

    def test_rgb_color(self):
        fragment = build_fragment("text", {"color": "rgb(255,0,0)"})
        assert fragment[1] == "rgb(255,0,0)"

    def test_unknown_gravity_rejected(self):
        with pytest.raises(ValidationError):
            build_fragment("text", {"x": "middle"})

    def test_empty_text_rejected(self):
        with pytest.raises(ValidationError):
            build_fragment("text", {"text": ""})

    @pytest.mark.parametrize("size", [0, 1001, "big"])
    def test_invalid_point_size(self, size):
        with pytest.raises(ValidationError):
            build_fragment("text", {"size": size})


class TestRotate:
    def test_out_of_range_degrees(self):
        with pytest.raises(ValidationError):
            build_fragment("rotate", {"degrees": 450})

    @pytest.mark.parametrize("degrees", [-361, "abc", "nan", "-inf", False])
    def test_invalid_degrees(self, degrees):
        with pytest.raises(ValidationError):
            build_fragment("rotate", {"degrees": degrees})

    def test_fractional_degrees(self):
        assert build_fragment("rotate", {"degrees": "45.5"}) == ["-rotate", "45.5"]

    def test_bounds_are_inclusive(self):
        assert build_fragment("rotate", {"degrees": -360}) == ["-rotate", "-360"]
        assert build_fragment("rotate", {"degrees": 360.0}) == ["-rotate", "360"]


class TestOperations:
    def test_parse_operation_is_case_insensitive(self):
        assert parse_operation("Resize") is OperationKind.RESIZE
        assert parse_operation(OperationKind.ROTATE) is OperationKind.ROTATE

    @pytest.mark.parametrize("name", ["sharpen", "", "resize;", "delete"])
    def test_unknown_operation_rejected(self, name: str):
        with pytest.raises(ValidationError):
            parse_operation(name)

    def test_purposes(self):
        assert output_purpose(OperationKind.RESIZE) == "resized"
        assert output_purpose(OperationKind.CONVERT) == "converted"
        assert output_purpose(OperationKind.FILTER) == "filtered"
        assert output_purpose(OperationKind.CROP) == "cropped"
        assert output_purpose(OperationKind.ANNOTATE_TEXT) == "text"
        assert output_purpose(OperationKind.ROTATE) == "rotated"

    def test_builder_is_pure(self, tmp_path: Path):
        command_builder.build(
            "resize",
            {"width": 10},
            input_path=tmp_path / "missing-in.jpg",
            output_path=tmp_path / "missing-out.jpg",
        )
        assert list(tmp_path.iterdir()) == []
