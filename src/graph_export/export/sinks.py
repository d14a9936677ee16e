"""
Output destinations for serialized documents.

Every destination is written independently: a failure on one sink is
reported and never prevents the others from receiving the document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from ..errors import SinkWriteError
from .assembler import CONTENT_ENCODING, CONTENT_TYPE

logger = logging.getLogger(__name__)


class Sink(Protocol):
    name: str

    def put(self, key: str, payload: bytes, *, content_type: str, encoding: str) -> None: ...


@dataclass
class FileSystemSink:
    root: Path
    name: str = "fs"

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def put(self, key: str, payload: bytes, *, content_type: str, encoding: str) -> None:
        target = self.root / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as e:
            raise SinkWriteError(self.name, key, str(e)) from e


@dataclass(frozen=True)
class S3Config:
    bucket: str
    prefix: str = ""
    public_read: bool = False
    region: str | None = None
    endpoint_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None


def build_s3_client(cfg: S3Config):
    """Create a boto3 S3 client.

    Without explicit keys boto3 falls back to its default credential chain
    (environment, shared config, instance profile).
    """

    import boto3

    kwargs: dict[str, Any] = {}
    if cfg.region:
        kwargs["region_name"] = cfg.region
    if cfg.endpoint_url:
        kwargs["endpoint_url"] = cfg.endpoint_url
    if cfg.access_key and cfg.secret_key:
        kwargs["aws_access_key_id"] = cfg.access_key
        kwargs["aws_secret_access_key"] = cfg.secret_key
    return boto3.client("s3", **kwargs)


@dataclass
class S3Sink:
    cfg: S3Config
    client: Any
    name: str = "s3"

    def put(self, key: str, payload: bytes, *, content_type: str, encoding: str) -> None:
        request: dict[str, Any] = {
            "Bucket": self.cfg.bucket,
            "Key": self.cfg.prefix + key,
            "Body": payload,
            "ContentType": content_type,
            "ContentEncoding": encoding,
            "ContentLength": len(payload),
        }
        if self.cfg.public_read:
            request["ACL"] = "public-read"
        try:
            self.client.put_object(**request)
        except (BotoCoreError, ClientError) as e:
            raise SinkWriteError(self.name, key, str(e)) from e


@dataclass
class DispatchReport:
    key: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[SinkWriteError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.succeeded)


class SinkDispatcher:
    """Fans one payload out to every configured sink."""

    def __init__(self, sinks: Iterable[Sink]):
        self.sinks = list(sinks)

    def dispatch(
        self,
        key: str,
        payload: bytes,
        *,
        content_type: str = CONTENT_TYPE,
        encoding: str = CONTENT_ENCODING,
    ) -> DispatchReport:
        report = DispatchReport(key=key)
        for sink in self.sinks:
            try:
                sink.put(key, payload, content_type=content_type, encoding=encoding)
            except SinkWriteError as e:
                logger.error("%s", e)
                report.failed.append(e)
            else:
                logger.debug("Put object %s to %s", key, sink.name)
                report.succeeded.append(sink.name)
        return report
