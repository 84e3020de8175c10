"""Tests for reimagine.core.responses: typed response decoding."""

import base64

import pytest

from reimagine.core.responses import extract_image, extract_text, first_parts

PNG_B64 = base64.b64encode(b"png-bytes").decode("ascii")
OTHER_B64 = base64.b64encode(b"other-bytes").decode("ascii")


def _response(*parts: dict) -> dict:
    return {"candidates": [{"content": {"parts": list(parts)}}]}


class TestEnvelopes:
    def test_bare_candidates(self):
        raw = _response({"text": "hi"})
        assert first_parts(raw) == [{"text": "hi"}]

    def test_wrapped_response(self):
        raw = {"response": _response({"text": "wrapped"})}
        assert first_parts(raw) == [{"text": "wrapped"}]

    def test_wrapped_preferred_over_bare(self):
        raw = {"response": _response({"text": "wrapped"}), **_response({"text": "bare"})}
        assert first_parts(raw) == [{"text": "wrapped"}]

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "not a dict",
            {},
            {"candidates": []},
            {"candidates": [{}]},
            {"candidates": [{"content": {}}]},
            {"response": {"candidates": []}},
        ],
    )
    def test_malformed_envelopes_yield_no_parts(self, raw):
        assert first_parts(raw) == []
        assert extract_image(raw) is None

    def test_only_first_candidate_used(self):
        raw = {
            "candidates": [
                {"content": {"parts": [{"text": "no image here"}]}},
                {"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": PNG_B64}}]}},
            ]
        }
        assert extract_image(raw) is None


class TestExtractImage:
    def test_inline_data_camel_case(self):
        raw = _response({"inlineData": {"mimeType": "image/png", "data": PNG_B64}})
        image = extract_image(raw)
        assert image.data == PNG_B64
        assert image.mime_type == "image/png"
        assert image.variant == "InlineDataPart"

    def test_inline_data_snake_case(self):
        raw = _response({"inline_data": {"mime_type": "image/jpeg", "data": PNG_B64}})
        image = extract_image(raw)
        assert image.data == PNG_B64
        assert image.mime_type == "image/jpeg"

    def test_inline_data_bytes_encoded(self):
        raw = _response({"inline_data": {"mime_type": "image/png", "data": b"png-bytes"}})
        assert extract_image(raw).data == PNG_B64

    def test_media_layout(self):
        raw = _response({"media": [{"mimeType": "image/webp", "data": PNG_B64}]})
        image = extract_image(raw)
        assert image.data == PNG_B64
        assert image.variant == "MediaPart"

    def test_inline_data_has_priority_over_media(self):
        raw = _response(
            {"media": [{"mimeType": "image/png", "data": OTHER_B64}]},
            {"inlineData": {"mimeType": "image/png", "data": PNG_B64}},
        )
        assert extract_image(raw).data == PNG_B64

    def test_text_part_before_image(self):
        raw = _response(
            {"text": "Here is your edited image."},
            {"inlineData": {"mimeType": "image/png", "data": PNG_B64}},
        )
        assert extract_image(raw).data == PNG_B64

    def test_non_image_inline_data_ignored(self):
        raw = _response({"inlineData": {"mimeType": "application/pdf", "data": PNG_B64}})
        assert extract_image(raw) is None

    def test_empty_data_ignored(self):
        raw = _response({"inlineData": {"mimeType": "image/png", "data": ""}})
        assert extract_image(raw) is None

    def test_empty_media_list_ignored(self):
        raw = _response({"media": []})
        assert extract_image(raw) is None

    def test_text_only_response(self):
        assert extract_image(_response({"text": "I cannot edit this."})) is None

    def test_unknown_part_shapes_fail_closed(self):
        raw = _response({"fileData": {"fileUri": "gs://bucket/x.png", "mimeType": "image/png"}})
        assert extract_image(raw) is None


class TestExtractText:
    def test_top_level_text_wins(self):
        raw = {"text": "top level", **_response({"text": "part text"})}
        assert extract_text(raw) == "top level"

    def test_first_non_blank_text_part(self):
        raw = _response({"text": "   "}, {"text": "second"}, {"text": "third"})
        assert extract_text(raw) == "second"

    def test_wrapped_response_text(self):
        raw = {"response": _response({"text": "wrapped explanation"})}
        assert extract_text(raw) == "wrapped explanation"

    def test_no_text(self):
        raw = _response({"inlineData": {"mimeType": "image/png", "data": PNG_B64}})
        assert extract_text(raw) is None
        assert extract_text({}) is None
