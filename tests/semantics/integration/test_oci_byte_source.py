"""
Semantic test: OCI Object Storage byte source.

Invariant:
Reads are ranged GETs clipped to the object size, the size comes from a
single HEAD request and storage errors surface as OSError. A split reader
over an object decodes the same records as over a local file.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from oci.exceptions import ServiceError

from historian_reader.core.codec.point_file_encoder import encode_point_file
from historian_reader.core.domain.types import SplitRange
from historian_reader.io.oci_byte_source import OCIObjectByteSource, OCIObjectByteSourceFactory
from historian_reader.reader.split_record_iterator import SplitRecordIterator


class _Body:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class FakeObjectStorageClient:
    def __init__(self, objects: dict[str, bytes], *, content_bodies: bool = False) -> None:
        self.objects = objects
        self.content_bodies = content_bodies
        self.head_calls = 0
        self.ranges: list[str] = []

    def get_namespace(self):
        return SimpleNamespace(data="historian-ns")

    def head_object(self, *, namespace_name, bucket_name, object_name):
        assert namespace_name == "historian-ns"
        self.head_calls += 1
        if object_name not in self.objects:
            raise ServiceError(404, "ObjectNotFound", {}, "The object was not found")
        size = len(self.objects[object_name])
        return SimpleNamespace(headers={"content-length": str(size)})

    def get_object(self, *, namespace_name, bucket_name, object_name, range):
        self.ranges.append(range)
        first, last = range.removeprefix("bytes=").split("-")
        data = self.objects[object_name][int(first):int(last) + 1]
        body = SimpleNamespace(content=data) if self.content_bodies else _Body(data)
        return SimpleNamespace(data=body)


def test_ranged_reads_are_clipped_to_object_size() -> None:
    client = FakeObjectStorageClient({"a.d": bytes(range(100))})
    source = OCIObjectByteSource(client=client, namespace="historian-ns", bucket="pmu", key="a.d")

    assert source.identity == "oci://pmu/a.d"
    assert source.size() == 100
    assert source.read_at(90, 64) == bytes(range(90, 100))
    assert source.read_at(100, 8) == b""
    assert source.read_at(10, 0) == b""

    assert client.ranges == ["bytes=90-99"]
    source.size()
    assert client.head_calls == 1


def test_factory_resolves_namespace_and_bodies_with_content() -> None:
    client = FakeObjectStorageClient({"b.d": b"0123456789"}, content_bodies=True)
    factory = OCIObjectByteSourceFactory(client=client, bucket="pmu")

    source = factory("b.d")

    assert source.read_at(2, 3) == b"234"


def test_split_reader_over_object(v2_header, make_records) -> None:
    records = make_records(30, tags=(7, 9))
    data = encode_point_file(v2_header, records)
    client = FakeObjectStorageClient({"archive/ppa.d": data})
    factory = OCIObjectByteSourceFactory(client=client, bucket="pmu", namespace="historian-ns")

    cut = len(data) // 2
    decoded = []
    for start, end in ((0, cut), (cut, len(data))):
        split = SplitRange(path="archive/ppa.d", start=start, end=end)
        with SplitRecordIterator(split, factory("archive/ppa.d"), read_chunk_bytes=128) as reader:
            decoded.extend(reader)

    assert [r.timestamp_millis for r in decoded] == [r.timestamp_millis for r in records]
    assert all(r.startswith("bytes=") for r in client.ranges)


def test_missing_object_raises_file_not_found() -> None:
    client = FakeObjectStorageClient({})
    source = OCIObjectByteSource(client=client, namespace="historian-ns", bucket="pmu", key="gone.d")

    with pytest.raises(FileNotFoundError, match="oci://pmu/gone.d"):
        source.size()
