"""Columnar parameter table in Arrow IPC stream format.

The table carries one row per queried node and time window:

    realm: utf8, ul_node_id: utf8, start_time: timestamp[ms],
    end_time: timestamp[ms], interval: int32
"""

from collections.abc import Sequence
from typing import Final

import pyarrow as pa
from pydantic import ValidationError

from traveltime_client.config.logging_config import get_logger
from traveltime_client.domain.exceptions import EncodeError, FormatError
from traveltime_client.domain.models import ParamRow

logger = get_logger(__name__)

PARAM_TABLE_SCHEMA: Final[pa.Schema] = pa.schema(
    [
        pa.field("realm", pa.utf8()),
        pa.field("ul_node_id", pa.utf8()),
        pa.field("start_time", pa.timestamp("ms")),
        pa.field("end_time", pa.timestamp("ms")),
        pa.field("interval", pa.int32()),
    ]
)


def encode_param_table(rows: Sequence[ParamRow]) -> bytes:
    """Serialize rows as an Arrow IPC stream holding a single record batch.

    Args:
        rows: Fully populated parameter rows, in request order

    Returns:
        Self-describing stream bytes

    Raises:
        EncodeError: If Arrow cannot build or write the batch
    """
    try:
        batch = pa.record_batch(
            [
                pa.array([row.realm for row in rows], type=pa.utf8()),
                pa.array([row.node_id for row in rows], type=pa.utf8()),
                pa.array([row.start_time for row in rows], type=pa.timestamp("ms")),
                pa.array([row.end_time for row in rows], type=pa.timestamp("ms")),
                pa.array([row.interval for row in rows], type=pa.int32()),
            ],
            schema=PARAM_TABLE_SCHEMA,
        )

        sink = pa.BufferOutputStream()
        with pa.ipc.new_stream(sink, PARAM_TABLE_SCHEMA) as writer:
            writer.write_batch(batch)
        data = sink.getvalue().to_pybytes()
    except (pa.ArrowException, OSError, OverflowError) as e:
        raise EncodeError(f"Failed to encode parameter table: {e}") from e

    logger.debug("param_table_encoded", rows=len(rows), size_bytes=len(data))
    return data


def decode_param_table(data: bytes) -> list[ParamRow]:
    """Parse an Arrow IPC stream back into parameter rows.

    Raises:
        FormatError: If the stream is malformed or lacks a required column
    """
    try:
        table = pa.ipc.open_stream(pa.py_buffer(data)).read_all()
    except (pa.ArrowException, OSError) as e:
        raise FormatError(f"Malformed parameter table: {e}") from e

    missing = [
        name for name in PARAM_TABLE_SCHEMA.names if name not in table.schema.names
    ]
    if missing:
        raise FormatError(f"Parameter table missing columns: {', '.join(missing)}")

    try:
        realms = table.column("realm").to_pylist()
        node_ids = table.column("ul_node_id").to_pylist()
        start_times = table.column("start_time").cast(pa.int64()).to_pylist()
        end_times = table.column("end_time").cast(pa.int64()).to_pylist()
        intervals = table.column("interval").cast(pa.int64()).to_pylist()
    except pa.ArrowException as e:
        raise FormatError(f"Unexpected parameter table column type: {e}") from e

    try:
        return [
            ParamRow(
                realm=realm,
                node_id=node_id,
                start_time=start_time,
                end_time=end_time,
                interval=interval,
            )
            for realm, node_id, start_time, end_time, interval in zip(
                realms, node_ids, start_times, end_times, intervals, strict=True
            )
        ]
    except ValidationError as e:
        raise FormatError(f"Invalid parameter row: {e}") from e
