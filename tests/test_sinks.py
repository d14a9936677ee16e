from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from conftest import BrokenSink
from graph_export.errors import SinkWriteError
from graph_export.export.assembler import CONTENT_ENCODING, CONTENT_TYPE
from graph_export.export.sinks import FileSystemSink, S3Config, S3Sink, SinkDispatcher


class RecordingClient:
    def __init__(self, error: Exception | None = None):
        self.calls: list[dict] = []
        self.error = error

    def put_object(self, **kwargs) -> dict:
        if self.error is not None:
            raise self.error
        self.calls.append(kwargs)
        return {}


def test_filesystem_sink_creates_label_folders(tmp_path) -> None:
    sink = FileSystemSink(tmp_path)
    sink.put("ands/a%2Fb.json", b"{}", content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING)
    assert (tmp_path / "ands" / "a%2Fb.json").read_bytes() == b"{}"


def test_filesystem_sink_overwrites(tmp_path) -> None:
    sink = FileSystemSink(tmp_path)
    sink.put("ands/x.json", b"old", content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING)
    sink.put("ands/x.json", b"new", content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING)
    assert (tmp_path / "ands" / "x.json").read_bytes() == b"new"


def test_filesystem_sink_wraps_os_errors(tmp_path) -> None:
    blocker = tmp_path / "ands"
    blocker.write_text("not a folder")
    with pytest.raises(SinkWriteError) as err:
        FileSystemSink(tmp_path).put("ands/x.json", b"{}", content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING)
    assert err.value.key == "ands/x.json"
    assert err.value.destination == "fs"


class TestS3Sink:
    def test_request_carries_metadata_and_prefix(self) -> None:
        client = RecordingClient()
        S3Sink(S3Config(bucket="graphs", prefix="rd/"), client).put(
            "dryad/10.1%2F2.json", b'{"a":1}', content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING
        )
        assert client.calls == [
            {
                "Bucket": "graphs",
                "Key": "rd/dryad/10.1%2F2.json",
                "Body": b'{"a":1}',
                "ContentType": "application/json",
                "ContentEncoding": "UTF-8",
                "ContentLength": 7,
            }
        ]

    def test_public_read_adds_acl(self) -> None:
        client = RecordingClient()
        S3Sink(S3Config(bucket="graphs", public_read=True), client).put(
            "ands/x.json", b"{}", content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING
        )
        assert client.calls[0]["ACL"] == "public-read"
        assert client.calls[0]["Key"] == "ands/x.json"

    def test_client_error_becomes_sink_write_error(self) -> None:
        error = ClientError({"Error": {"Code": "AccessDenied", "Message": "nope"}}, "PutObject")
        sink = S3Sink(S3Config(bucket="graphs"), RecordingClient(error))
        with pytest.raises(SinkWriteError) as err:
            sink.put("ands/x.json", b"{}", content_type=CONTENT_TYPE, encoding=CONTENT_ENCODING)
        assert err.value.destination == "s3"


class TestDispatcher:
    def test_failure_on_one_sink_does_not_stop_others(self, tmp_path) -> None:
        client = RecordingClient()
        dispatcher = SinkDispatcher([BrokenSink(), FileSystemSink(tmp_path), S3Sink(S3Config(bucket="b"), client)])
        report = dispatcher.dispatch("ands/x.json", b"{}")
        assert report.ok
        assert report.succeeded == ["fs", "s3"]
        assert [e.destination for e in report.failed] == ["broken"]
        assert (tmp_path / "ands" / "x.json").exists()
        assert len(client.calls) == 1

    def test_all_sinks_failing_is_not_ok(self) -> None:
        report = SinkDispatcher([BrokenSink()]).dispatch("ands/x.json", b"{}")
        assert not report.ok

    def test_no_sinks(self) -> None:
        report = SinkDispatcher([]).dispatch("ands/x.json", b"{}")
        assert report.succeeded == []
        assert not report.ok
