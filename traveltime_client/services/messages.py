"""Size-prefixed FlatBuffers messages exchanged with the schematic evaluator.

Table layouts follow ``schema/traveltime.fbs``. Readers and builders below
mirror what ``flatc --python`` generates for that schema, reduced to the
fields this client uses:

    ObjectId      { b: [ubyte] }
    TaskParameter { key: string, value: [ubyte] }
    ParamIndices  { idxs: [int] }
    RunSpec       { dry_run: bool, schematic: ObjectId,
                    param_indices: [ParamIndices], params: [TaskParameter] }
    Task          { output: ObjectId }
    Job           { id: ObjectId, status: Status (byte), tasks: [Task] }
"""

import struct
from collections.abc import Callable
from typing import Final, TypeVar

import flatbuffers
from flatbuffers import encode, packer, util
from flatbuffers import number_types as N
from flatbuffers.table import Table

from traveltime_client.domain.exceptions import FormatError
from traveltime_client.domain.models import (
    Job,
    JobStatus,
    RunSpec,
    Task,
    TaskParameter,
)
from traveltime_client.domain.object_id import ObjectId

T = TypeVar("T")

SIZE_PREFIX_BYTES: Final[int] = N.Int32Flags.bytewidth
UOFFSET_BYTES: Final[int] = N.UOffsetTFlags.bytewidth

# Vtable slots, per table.
OBJECT_ID_B: Final[int] = 0
TASK_PARAMETER_KEY: Final[int] = 0
TASK_PARAMETER_VALUE: Final[int] = 1
PARAM_INDICES_IDXS: Final[int] = 0
RUN_SPEC_DRY_RUN: Final[int] = 0
RUN_SPEC_SCHEMATIC: Final[int] = 1
RUN_SPEC_PARAM_INDICES: Final[int] = 2
RUN_SPEC_PARAMS: Final[int] = 3
TASK_OUTPUT: Final[int] = 0
JOB_ID: Final[int] = 0
JOB_STATUS: Final[int] = 1
JOB_TASKS: Final[int] = 2


# --- reading ---------------------------------------------------------------


def _slot(tab: Table, slot: int) -> int:
    return int(tab.Offset(4 + 2 * slot))


def _root_table(data: bytes) -> Table:
    """Strip the size prefix and return the root table."""
    if len(data) < SIZE_PREFIX_BYTES + UOFFSET_BYTES:
        raise FormatError(f"Message too short: {len(data)} bytes")

    size = util.GetSizePrefix(data, 0)
    if size < 0 or size > len(data) - SIZE_PREFIX_BYTES:
        raise FormatError(
            f"Size prefix {size} exceeds message body of "
            f"{len(data) - SIZE_PREFIX_BYTES} bytes"
        )

    buf, offset = util.RemoveSizePrefix(data, 0)
    root = encode.Get(packer.uoffset, buf, offset)
    return Table(buf, root + offset)


def _table_field(tab: Table, slot: int) -> Table | None:
    o = _slot(tab, slot)
    if o == 0:
        return None
    return Table(tab.Bytes, tab.Indirect(o + tab.Pos))


def _table_vector(tab: Table, slot: int) -> list[Table]:
    o = _slot(tab, slot)
    if o == 0:
        return []
    start = tab.Vector(o)
    return [
        Table(tab.Bytes, tab.Indirect(start + i * UOFFSET_BYTES))
        for i in range(tab.VectorLen(o))
    ]


def _byte_vector(tab: Table, slot: int) -> bytes:
    o = _slot(tab, slot)
    if o == 0:
        return b""
    start = tab.Vector(o)
    length = tab.VectorLen(o)
    if start + length > len(tab.Bytes):
        raise FormatError("Byte vector runs past end of message")
    return bytes(tab.Bytes[start : start + length])


def _read_object_id(tab: Table) -> ObjectId:
    return ObjectId(_byte_vector(tab, OBJECT_ID_B))


def _decode(data: bytes, read: Callable[[Table], T], what: str) -> T:
    try:
        return read(_root_table(data))
    except FormatError:
        raise
    except (struct.error, IndexError, ValueError) as e:
        raise FormatError(f"Malformed {what} message: {e}") from e


def decode_object_id(data: bytes) -> ObjectId:
    """Decode a size-prefixed ObjectId message."""
    return _decode(data, _read_object_id, "ObjectId")


def _read_job(tab: Table) -> Job:
    id_table = _table_field(tab, JOB_ID)

    o = _slot(tab, JOB_STATUS)
    raw_status = tab.Get(N.Int8Flags, o + tab.Pos) if o != 0 else 0
    try:
        status = JobStatus(raw_status)
    except ValueError as e:
        raise FormatError(f"Unknown job status: {raw_status}") from e

    tasks = []
    for task_table in _table_vector(tab, JOB_TASKS):
        output = _table_field(task_table, TASK_OUTPUT)
        tasks.append(Task(output=_read_object_id(output) if output else None))

    return Job(
        id=_read_object_id(id_table) if id_table else None,
        status=status,
        tasks=tasks,
    )


def decode_job(data: bytes) -> Job:
    """Decode a size-prefixed Job message."""
    return _decode(data, _read_job, "Job")


def _read_run_spec(tab: Table) -> RunSpec:
    schematic = _table_field(tab, RUN_SPEC_SCHEMATIC)
    if schematic is None:
        raise FormatError("RunSpec has no schematic")

    o = _slot(tab, RUN_SPEC_DRY_RUN)
    dry_run = bool(tab.Get(N.BoolFlags, o + tab.Pos)) if o != 0 else False

    params = []
    for param in _table_vector(tab, RUN_SPEC_PARAMS):
        o = _slot(param, TASK_PARAMETER_KEY)
        key = param.String(o + param.Pos).decode("utf-8") if o != 0 else ""
        params.append(
            TaskParameter(key=key, value=_byte_vector(param, TASK_PARAMETER_VALUE))
        )

    param_indices = []
    for indices in _table_vector(tab, RUN_SPEC_PARAM_INDICES):
        o = _slot(indices, PARAM_INDICES_IDXS)
        idxs: list[int] = []
        if o != 0:
            start = indices.Vector(o)
            idxs = [
                indices.Get(N.Int32Flags, start + i * N.Int32Flags.bytewidth)
                for i in range(indices.VectorLen(o))
            ]
        param_indices.append(idxs)

    return RunSpec(
        schematic=_read_object_id(schematic),
        params=params,
        param_indices=param_indices,
        dry_run=dry_run,
    )


def decode_run_spec(data: bytes) -> RunSpec:
    """Decode a size-prefixed RunSpec message."""
    return _decode(data, _read_run_spec, "RunSpec")


# --- building --------------------------------------------------------------


def _build_object_id(builder: flatbuffers.Builder, object_id: ObjectId) -> int:
    b_offset = builder.CreateByteVector(object_id.raw)
    builder.StartObject(1)
    builder.PrependUOffsetTRelativeSlot(OBJECT_ID_B, b_offset, 0)
    return int(builder.EndObject())


def _build_offset_vector(builder: flatbuffers.Builder, offsets: list[int]) -> int:
    builder.StartVector(UOFFSET_BYTES, len(offsets), UOFFSET_BYTES)
    for offset in reversed(offsets):
        builder.PrependUOffsetTRelative(offset)
    return int(builder.EndVector())


def _finish(builder: flatbuffers.Builder, root: int) -> bytes:
    builder.FinishSizePrefixed(root)
    return bytes(builder.Output())


def encode_object_id(object_id: ObjectId) -> bytes:
    """Encode a size-prefixed ObjectId message."""
    builder = flatbuffers.Builder(0)
    return _finish(builder, _build_object_id(builder, object_id))


def encode_run_spec(run_spec: RunSpec) -> bytes:
    """Encode a size-prefixed RunSpec message."""
    builder = flatbuffers.Builder(0)
    schematic = _build_object_id(builder, run_spec.schematic)

    param_offsets = []
    for param in run_spec.params:
        value = builder.CreateByteVector(param.value)
        key = builder.CreateString(param.key)
        builder.StartObject(2)
        builder.PrependUOffsetTRelativeSlot(TASK_PARAMETER_VALUE, value, 0)
        builder.PrependUOffsetTRelativeSlot(TASK_PARAMETER_KEY, key, 0)
        param_offsets.append(builder.EndObject())
    params = _build_offset_vector(builder, param_offsets)

    indices_offsets = []
    for task_indices in run_spec.param_indices:
        builder.StartVector(N.Int32Flags.bytewidth, len(task_indices), 4)
        for index in reversed(task_indices):
            builder.PrependInt32(index)
        idxs = builder.EndVector()
        builder.StartObject(1)
        builder.PrependUOffsetTRelativeSlot(PARAM_INDICES_IDXS, idxs, 0)
        indices_offsets.append(builder.EndObject())
    param_indices = _build_offset_vector(builder, indices_offsets)

    builder.StartObject(4)
    builder.PrependUOffsetTRelativeSlot(RUN_SPEC_PARAMS, params, 0)
    builder.PrependUOffsetTRelativeSlot(RUN_SPEC_PARAM_INDICES, param_indices, 0)
    builder.PrependUOffsetTRelativeSlot(RUN_SPEC_SCHEMATIC, schematic, 0)
    builder.PrependBoolSlot(RUN_SPEC_DRY_RUN, run_spec.dry_run, False)
    return _finish(builder, builder.EndObject())


def encode_job(job: Job) -> bytes:
    """Encode a size-prefixed Job message (the evaluator's status payload)."""
    builder = flatbuffers.Builder(0)

    task_offsets = []
    for task in job.tasks:
        output = _build_object_id(builder, task.output) if task.output else None
        builder.StartObject(1)
        if output is not None:
            builder.PrependUOffsetTRelativeSlot(TASK_OUTPUT, output, 0)
        task_offsets.append(builder.EndObject())
    tasks = _build_offset_vector(builder, task_offsets)

    job_id = _build_object_id(builder, job.id) if job.id else None

    builder.StartObject(3)
    builder.PrependUOffsetTRelativeSlot(JOB_TASKS, tasks, 0)
    if job_id is not None:
        builder.PrependUOffsetTRelativeSlot(JOB_ID, job_id, 0)
    builder.PrependInt8Slot(JOB_STATUS, int(job.status), 0)
    return _finish(builder, builder.EndObject())
