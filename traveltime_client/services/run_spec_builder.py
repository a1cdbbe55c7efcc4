"""Builds the RunSpec message for a travel time job."""

from collections.abc import Sequence
from typing import Final

from traveltime_client.config.logging_config import get_logger
from traveltime_client.domain.models import ParamRow, RunSpec, TaskParameter
from traveltime_client.domain.object_id import ObjectId
from traveltime_client.services.messages import encode_run_spec
from traveltime_client.services.param_table import encode_param_table

logger = get_logger(__name__)

PARAMS_KEY: Final[str] = "params"


def build_run_spec(schematic: ObjectId, rows: Sequence[ParamRow]) -> RunSpec:
    """Wrap the encoded parameter table in a single-task RunSpec.

    The travel time schematic has one task, which consumes parameter
    table 0.
    """
    table = encode_param_table(rows)
    return RunSpec(
        schematic=schematic,
        params=[TaskParameter(key=PARAMS_KEY, value=table)],
        param_indices=[[0]],
    )


def build_run_spec_message(schematic: ObjectId, rows: Sequence[ParamRow]) -> bytes:
    """Build the size-prefixed RunSpec message ready to POST."""
    message = encode_run_spec(build_run_spec(schematic, rows))
    logger.debug(
        "run_spec_built",
        schematic=str(schematic),
        rows=len(rows),
        size_bytes=len(message),
    )
    return message
