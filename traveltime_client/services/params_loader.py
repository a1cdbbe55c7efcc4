"""Reads travel time request rows from a params JSON file."""

from pathlib import Path

from pydantic import ValidationError

from traveltime_client.config.logging_config import get_logger
from traveltime_client.config.settings import load_json_file
from traveltime_client.domain.exceptions import ConfigurationError
from traveltime_client.domain.models import ParamRow

logger = get_logger(__name__)


def load_param_rows(path: Path | str, realm: str) -> list[ParamRow]:
    """Load parameter rows, tagging each with the configured realm.

    Expected layout::

        {"params": [{"ul_node_id": "...", "start_time": 1577836800000,
                     "end_time": 1577923200000, "interval": 15}, ...]}

    Args:
        path: Params file
        realm: Realm applied to every row

    Returns:
        Rows in file order

    Raises:
        ConfigurationError: If the file is unreadable or a row is invalid
    """
    document = load_json_file(path, "params")

    rows: list[ParamRow] = []
    for position, entry in enumerate(document["params"]):
        try:
            rows.append(
                ParamRow(
                    realm=realm,
                    node_id=entry["ul_node_id"],
                    start_time=entry["start_time"],
                    end_time=entry["end_time"],
                    interval=entry["interval"],
                )
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid params entry {position} in {path}: {e}"
            ) from e

    logger.info("params_loaded", path=str(path), rows=len(rows))
    return rows
