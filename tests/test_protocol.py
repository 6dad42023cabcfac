import pytest

from stratum_bench import bench_protocol as proto
from stratum_bench.http_fetch import FetchRequest, HttpData
from stratum_bench.support.errors import BenchRequestFailed
from stratum_bench.support.hardware import cpu_to_json


def test_paths_and_auth():
    assert proto.create_path() == "/1/benchmark"
    assert proto.job_path("abc") == "/1/benchmark/abc"
    assert proto.bearer("t") == {"Authorization": "Bearer t"}


def test_hash_formatting():
    assert proto.format_hash(0xABCD) == "000000000000ABCD"
    assert proto.format_hash(0xFFFFFFFFFFFFFFFF) == "FFFFFFFFFFFFFFFF"


def test_payload_shapes():
    assert proto.create_payload(1_000_000, "rx/0", "0.1.0", {"brand": "x"}) == {
        "size": 1_000_000,
        "algo": "rx/0",
        "version": "0.1.0",
        "cpu": {"brand": "x"},
    }
    assert proto.start_payload(8, 1234) == {"threads": 8, "steady_start_ts": 1234}
    assert proto.done_payload(5678, 0x1F, {"type": "cpu"}) == {
        "steady_done_ts": 5678,
        "hash": "000000000000001F",
        "backend": {"type": "cpu"},
    }


def test_read_create_tolerates_missing_fields():
    reply = proto.read_create({"id": "abc"})
    assert reply == proto.CreateReply(id="abc", seed=None, token="")


def test_read_fetch(caplog):
    reply = proto.read_fetch({"hash": "00000000DEADBEEF", "algo": "rx/0", "seed": "s", "size": 250000})
    assert reply.hash == 0xDEADBEEF
    assert reply.size == 250_000
    assert proto.read_fetch({"hash": "nothex", "size": -1}) == proto.FetchReply(0, None, None, 0)
    assert "ignoring malformed benchmark hash 'nothex'" in caplog.text


@pytest.mark.parametrize("body", [b"", b"[]", b"not json", b"\xff\xfe"])
def test_loads_rejects_non_objects(body):
    with pytest.raises(ValueError):
        proto.loads(body)


def test_fetch_request_url():
    req = FetchRequest(proto.HttpMethod.GET, "api.bench", 443, "/1/benchmark/x")
    assert req.url == "https://api.bench/1/benchmark/x"
    req = FetchRequest(proto.HttpMethod.GET, "localhost", 8080, "/1/benchmark", tls=False)
    assert req.url == "http://localhost:8080/1/benchmark"


def test_http_data_status_name():
    assert HttpData(proto.HttpMethod.GET, "u", status=404).status_name() == "Not Found"
    assert HttpData(proto.HttpMethod.GET, "u", status=799).status_name() == "799"


def test_cpu_descriptor_from_cpuinfo():
    cpu = cpu_to_json({"model name": "Test CPU @ 3GHz", "flags": "fpu sse aes avx2", "cpu cores": "6"})
    assert cpu["brand"] == "Test CPU @ 3GHz"
    assert cpu["aes"] is True
    assert cpu["avx2"] is True
    assert cpu["cores"] == 6
    assert cpu["threads"] >= 1


def test_errors_serialize():
    err = BenchRequestFailed(message="Not Found", status=404)
    d = err.to_dict()
    assert d["code"] == 2002
    assert d["context"] == {"status": 404}
