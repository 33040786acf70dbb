"""
Tests for the line-delimited JSON module protocol.
"""

import json

from runtime.protocol import (
    METHOD_GET_IMAGE,
    decode_message,
    encode_request,
    encode_response,
    error_message,
    is_request,
)


class TestEncoding:
    def test_request_is_one_line(self):
        raw = encode_request(7, METHOD_GET_IMAGE, {"name": "cam"})

        assert raw.endswith(b"\n")
        assert raw.count(b"\n") == 1
        assert json.loads(raw) == {"id": 7, "method": "get_image", "params": {"name": "cam"}}

    def test_request_params_default_to_empty(self):
        assert json.loads(encode_request(1, "ready"))["params"] == {}

    def test_error_response(self):
        message = decode_message(encode_response(3, error="camera not ready"))

        assert error_message(message) == "camera not ready"
        assert "result" not in message

    def test_result_response(self):
        message = decode_message(encode_response(3, result={"ok": True}))

        assert error_message(message) is None
        assert message["result"] == {"ok": True}
        assert not is_request(message)


class TestDecoding:
    def test_blank_line(self):
        assert decode_message(b"\n") is None

    def test_stray_print_is_ignored(self):
        assert decode_message(b"starting camera pipeline...\n") is None

    def test_json_without_id_is_ignored(self):
        assert decode_message(b'{"hello": "world"}\n') is None

    def test_non_object_json_is_ignored(self):
        assert decode_message(b"[1, 2, 3]\n") is None

    def test_invalid_utf8_is_ignored(self):
        assert decode_message(b"\xff\xfe\n") is None

    def test_accepts_text(self):
        message = decode_message('{"id": 1, "method": "ready", "params": {}}')

        assert is_request(message)

    def test_plain_string_error(self):
        assert error_message({"id": 1, "error": "boom"}) == "boom"
