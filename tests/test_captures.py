"""Tests for image sniffing and capture-file import."""

import base64
import json

import pytest

from conftest import make_jpeg, make_png

from audit_app.captures import DEFAULT_GROUP, group_captures, parse_capture_import
from audit_app.errors import ValidationError
from audit_app.images import decode_base64_image, load_image, sniff_media_type
from audit_app.settings import settings


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class TestImages:
    """The media type comes from the bytes, not from the caller."""

    def test_sniffs_png_and_jpeg(self):
        assert sniff_media_type(make_png()) == "image/png"
        assert sniff_media_type(make_jpeg()) == "image/jpeg"

    def test_rejects_non_images(self):
        with pytest.raises(ValidationError):
            sniff_media_type(b"definitely not an image")

    def test_rejects_empty_and_oversize(self, monkeypatch):
        with pytest.raises(ValidationError):
            load_image(b"")
        monkeypatch.setattr(settings, "max_image_bytes", 10)
        with pytest.raises(ValidationError, match="exceeds"):
            load_image(make_png())

    def test_decodes_data_urls(self):
        blob = decode_base64_image("data:image/jpeg;base64," + b64(make_png()))
        # declared jpeg, actually png
        assert blob.media_type == "image/png"

    def test_rejects_bad_base64(self):
        with pytest.raises(ValidationError, match="base64"):
            decode_base64_image("***")


class TestCaptureImport:
    def document(self, *captures):
        return {"captures": list(captures)}

    def test_parses_camel_case_captures(self):
        doc = self.document({"id": "c1", "image": b64(make_png()), "flowId": "checkout", "isCorrect": True})
        imported = parse_capture_import(json.dumps(doc))
        capture = imported.captures[0]
        assert capture.flow_id == "checkout"
        assert capture.is_correct is True
        assert capture.content_type == "unknown"

    @pytest.mark.parametrize("bad", [
        "not json",
        json.dumps({"items": []}),
        json.dumps({"captures": "nope"}),
        json.dumps({"captures": []}),
        json.dumps({"captures": [{"id": "c1"}]}),
    ])
    def test_rejects_malformed_documents(self, bad):
        with pytest.raises(ValidationError):
            parse_capture_import(bad)

    def test_groups_by_assignment_then_flow(self):
        png = b64(make_png())
        imported = parse_capture_import(self.document(
            {"id": "a", "image": png, "flowId": "signup"},
            {"id": "b", "image": png, "flowId": "signup"},
            {"id": "c", "image": png},
            {"image": png},
        ))
        groups = group_captures(imported, {"b": "Practice", "3": "Quiz"})
        assert {k: len(v) for k, v in groups.items()} == {
            "signup": 1,
            "Practice": 1,
            DEFAULT_GROUP: 1,
            "Quiz": 1,
        }
        assert groups["signup"][0].media_type == "image/png"
