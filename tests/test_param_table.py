"""Tests for the Arrow parameter table."""

import pyarrow as pa
import pytest

from traveltime_client.domain.exceptions import EncodeError, FormatError
from traveltime_client.domain.models import ParamRow
from traveltime_client.services import param_table
from traveltime_client.services.param_table import (
    PARAM_TABLE_SCHEMA,
    decode_param_table,
    encode_param_table,
)


def _rows(count: int) -> list[ParamRow]:
    return [
        ParamRow(
            realm="realm-x",
            node_id=f"node-{i}",
            start_time=1577836800000 + i * 3_600_000,
            end_time=1577836800000 + (i + 1) * 3_600_000,
            interval=15 * (i + 1),
        )
        for i in range(count)
    ]


@pytest.mark.parametrize("count", [0, 1, 25])
def test_decode_returns_rows_in_order(count: int) -> None:
    rows = _rows(count)

    assert decode_param_table(encode_param_table(rows)) == rows


def test_stream_is_self_describing() -> None:
    data = encode_param_table(_rows(3))

    reader = pa.ipc.open_stream(data)
    batches = list(reader)

    assert reader.schema.equals(PARAM_TABLE_SCHEMA)
    assert len(batches) == 1
    assert batches[0].num_rows == 3
    assert reader.schema.names == [
        "realm",
        "ul_node_id",
        "start_time",
        "end_time",
        "interval",
    ]
    assert batches[0].column("interval").to_pylist() == [15, 30, 45]


def test_unicode_and_extreme_values_survive() -> None:
    rows = [
        ParamRow(
            realm="région",
            node_id="nœud-東京",
            start_time=0,
            end_time=253402300799000,
            interval=2**31 - 1,
        ),
        ParamRow(
            realm="r",
            node_id="n",
            start_time=-86_400_000,
            end_time=0,
            interval=-(2**31),
        ),
    ]

    assert decode_param_table(encode_param_table(rows)) == rows


def test_decode_rejects_garbage() -> None:
    with pytest.raises(FormatError):
        decode_param_table(b"definitely not arrow")


def test_decode_rejects_missing_columns() -> None:
    schema = pa.schema([pa.field("realm", pa.utf8())])
    sink = pa.BufferOutputStream()
    with pa.ipc.new_stream(sink, schema) as writer:
        writer.write_batch(pa.record_batch([pa.array(["r"])], schema=schema))

    with pytest.raises(FormatError, match="ul_node_id"):
        decode_param_table(sink.getvalue().to_pybytes())


def test_arrow_failure_surfaces_as_encode_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken_stream(*_args: object, **_kwargs: object) -> None:
        raise OSError("disk on fire")

    monkeypatch.setattr(param_table.pa.ipc, "new_stream", _broken_stream)

    with pytest.raises(EncodeError, match="disk on fire"):
        encode_param_table(_rows(1))


def test_out_of_range_timestamp_surfaces_as_encode_error() -> None:
    row = ParamRow.model_construct(
        realm="r", node_id="n", start_time=2**70, end_time=0, interval=1
    )

    with pytest.raises(EncodeError):
        encode_param_table([row])
