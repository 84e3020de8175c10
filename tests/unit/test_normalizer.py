"""Tests for reimagine.core.normalizer: payload and instruction normalization."""

import base64

import pytest

from reimagine.core.errors import AnalysisFailure, TransportError
from reimagine.core.normalizer import (
    CHANGE_LEAD,
    PRESERVE_LEAD,
    UNANALYZED_TEXT,
    RequestNormalizer,
    build_instruction,
    pad_base64,
    split_data_url,
    strip_data_url,
    to_base64,
    wrap_data_url,
)
from reimagine.core.validation import GenerationRequest


class TestDataUrls:
    def test_strip_data_url(self):
        assert strip_data_url("data:image/png;base64,iVBORw0KGgo=") == "iVBORw0KGgo="

    def test_plain_base64_passes_through(self):
        assert strip_data_url("iVBORw0KGgo=") == "iVBORw0KGgo="

    def test_non_base64_data_url_passes_through(self):
        value = "data:text/plain,hello"
        assert strip_data_url(value) == value

    def test_split_data_url(self):
        assert split_data_url("data:image/webp;base64,AAAA") == ("image/webp", "AAAA")
        assert split_data_url("AAAA") == (None, "AAAA")

    @pytest.mark.parametrize(
        "value",
        [
            "data:image/png;base64,iVBORw0KGgo=",
            "data:image/jpeg;base64,/9j/4AAQSkZJRg==",
            "data:image/webp;base64,UklGRg",
        ],
    )
    def test_wrap_unwrap_round_trip(self, value):
        mime_type, payload = split_data_url(value)
        assert wrap_data_url(payload, mime_type) == value
        assert wrap_data_url(strip_data_url(value), mime_type) == value


class TestPadBase64:
    @pytest.mark.parametrize("raw", [b"a", b"ab", b"abcd", b"abcde", b"\x00\xff\x10\x20\x30"])
    def test_padding_restores_decodable_length(self, raw):
        encoded = base64.b64encode(raw).decode("ascii")
        stripped = encoded.rstrip("=")
        padded = pad_base64(stripped)
        assert len(padded) % 4 == 0
        assert base64.b64decode(padded) == raw

    @pytest.mark.parametrize("remainder", [1, 2, 3])
    def test_padding_for_each_remainder(self, remainder):
        value = "A" * (8 + remainder)
        padded = pad_base64(value)
        assert len(padded) % 4 == 0
        assert padded.startswith(value)
        assert padded[len(value):] == "=" * (4 - remainder)

    def test_already_padded_unchanged(self):
        assert pad_base64("QUJD") == "QUJD"
        assert pad_base64("") == ""


class TestToBase64:
    def test_bytes_encoded(self):
        assert to_base64(b"hello") == base64.b64encode(b"hello").decode("ascii")

    def test_data_url_stripped_and_padded(self):
        assert to_base64("data:image/png;base64,aGVsbG8") == "aGVsbG8="


class TestBuildInstruction:
    def test_guard_precedes_prompt(self):
        text = build_instruction("make it blue", guard_clause="EDIT ONLY.")
        assert text == f"EDIT ONLY.\n{CHANGE_LEAD} make it blue"

    def test_directive_appended(self):
        text = build_instruction(
            "make it blue",
            guard_clause="EDIT ONLY.",
            output_directive="Return an image, not text.",
        )
        assert text.splitlines()[-1] == "Return an image, not text."

    def test_description_folded_in(self):
        text = build_instruction(
            "make it blue",
            guard_clause="EDIT ONLY.",
            description="A red square on white.",
        )
        lines = text.splitlines()
        assert lines[0] == "EDIT ONLY."
        assert lines[1] == f"{PRESERVE_LEAD} A red square on white."
        assert lines[2] == f"{CHANGE_LEAD} make it blue"

    def test_blank_description_ignored(self):
        text = build_instruction("make it blue", guard_clause="EDIT ONLY.", description="   ")
        assert PRESERVE_LEAD not in text


def _request(png_bytes: bytes) -> GenerationRequest:
    return GenerationRequest(image_bytes=png_bytes, mime_type="image/png", prompt="make it blue")


class TestRequestNormalizer:
    def test_normalize_without_analysis(self, test_config, png_bytes):
        normalized = RequestNormalizer(test_config).normalize(_request(png_bytes))
        assert base64.b64decode(normalized.image_base64) == png_bytes
        assert normalized.mime_type == "image/png"
        assert normalized.prompt == "make it blue"
        assert normalized.instruction.startswith(test_config.guard_clause)
        assert "make it blue" in normalized.instruction
        assert normalized.description is None

    def test_describer_not_called_when_disabled(self, test_config, png_bytes):
        calls = []
        normalizer = RequestNormalizer(test_config, describe=lambda b64, mime: calls.append(mime) or "x")
        normalizer.normalize(_request(png_bytes))
        assert calls == []

    def test_description_used_when_enabled(self, test_config, png_bytes):
        test_config.enable_analysis = True
        normalizer = RequestNormalizer(test_config, describe=lambda b64, mime: " A red pixel. ")
        normalized = normalizer.normalize(_request(png_bytes))
        assert normalized.description == "A red pixel."
        assert f"{PRESERVE_LEAD} A red pixel." in normalized.instruction

    def test_describer_failure_is_not_fatal(self, test_config, png_bytes):
        test_config.enable_analysis = True

        def broken(image_base64, mime_type):
            raise TransportError("analysis model down")

        normalized = RequestNormalizer(test_config, describe=broken).normalize(_request(png_bytes))
        assert normalized.description is None
        assert PRESERVE_LEAD not in normalized.instruction

    def test_unanalyzed_text_treated_as_missing(self, test_config, png_bytes):
        test_config.enable_analysis = True
        normalizer = RequestNormalizer(test_config, describe=lambda b64, mime: UNANALYZED_TEXT)
        assert normalizer.normalize(_request(png_bytes)).description is None

    def test_describe_image_wraps_errors(self, test_config):
        def broken(image_base64, mime_type):
            raise RuntimeError("boom")

        with pytest.raises(AnalysisFailure, match="boom"):
            RequestNormalizer(test_config, describe=broken).describe_image("AAAA", "image/png")

    def test_describe_image_without_describer(self, test_config):
        with pytest.raises(AnalysisFailure):
            RequestNormalizer(test_config).describe_image("AAAA", "image/png")
