"""Application settings with Pydantic Settings validation.

Credentials and job identifiers are read from ``config.json``. Any field the
file leaves out may be supplied through ``TRAVELTIME_*`` environment
variables or a ``.env`` file (e.g. ``TRAVELTIME_PASSWORD``). The file is
validated against ``schemas/config.schema.json`` before the model is built.
"""

import json
from pathlib import Path
from typing import Any, Final, cast

from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from traveltime_client.config.logging_config import get_logger
from traveltime_client.domain.exceptions import ConfigurationError
from traveltime_client.domain.models import PollPolicy
from traveltime_client.domain.object_id import ObjectId, from_guid, to_guid

API_BASE_URL_DEFAULT: Final[str] = "https://api.urbanlogiq.ca/v1/api/ulv2"
API_AUTHORITY_DEFAULT: Final[str] = "api.urbanlogiq.ca"
TOKEN_URL_DEFAULT: Final[str] = (
    "https://urbanlogiqcanada.b2clogin.com/"
    "urbanlogiqcanada.onmicrosoft.com/oauth2/v2.0/token"
)
TOKEN_POLICY_DEFAULT: Final[str] = "B2C_1_ropc"
HTTP_TIMEOUT_SECONDS_DEFAULT: Final[float] = 60.0

SCHEMAS_DIR: Final[Path] = Path(__file__).parent / "schemas"

logger = cast(Any, get_logger(__name__))


def load_schema(schema_name: str) -> dict[str, Any]:
    """Load a bundled JSON Schema.

    Args:
        schema_name: Schema name without extension (e.g., "config")

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    with open(schema_path, encoding="utf-8") as f:
        return cast(dict[str, Any], json.load(f))


def load_json_file(path: Path | str, schema_name: str) -> dict[str, Any]:
    """Read a JSON document and validate it against a bundled schema.

    Args:
        path: File to read
        schema_name: Name of schema to validate against

    Returns:
        Parsed document

    Raises:
        ConfigurationError: If the file is missing, not JSON, or invalid
    """
    file_path = Path(path)
    try:
        with open(file_path, encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"File not found: {file_path}") from e
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(f"Could not read {file_path}: {e}") from e

    schema = load_schema(schema_name)
    if schema:
        try:
            validate(instance=document, schema=schema)
        except JSONSchemaValidationError as e:
            raise ConfigurationError(
                f"Validation failed for {schema_name} (file: {file_path}): {e.message}"
            ) from e

    logger.debug("json_file_loaded", path=str(file_path), schema=schema_name)
    return cast(dict[str, Any], document)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="TRAVELTIME_",
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === CREDENTIALS ===

    client_id: str = Field(..., min_length=1, description="Identity provider client id")
    username: str = Field(..., min_length=1, description="API account login")
    password: SecretStr = Field(..., description="API account password")

    # === JOB ===

    schematic: str = Field(..., description="Guid of the travel time schematic")
    realm: str = Field(..., min_length=1, description="Realm of the queried nodes")

    # === ENDPOINTS ===

    api_base_url: str = Field(default=API_BASE_URL_DEFAULT)
    api_authority: str = Field(default=API_AUTHORITY_DEFAULT)
    token_url: str = Field(default=TOKEN_URL_DEFAULT)
    token_policy: str = Field(default=TOKEN_POLICY_DEFAULT)
    http_timeout_seconds: float = Field(
        default=HTTP_TIMEOUT_SECONDS_DEFAULT,
        gt=0,
        description="Per-request HTTP timeout",
    )

    # === POLLING ===

    poll_initial_interval_seconds: float = Field(default=1.0, gt=0)
    poll_max_interval_seconds: float = Field(default=30.0, gt=0)
    poll_backoff_multiplier: float = Field(default=2.0, ge=1)
    poll_jitter_seconds: float = Field(default=0.5, ge=0)
    poll_timeout_seconds: float | None = Field(
        default=3600.0,
        gt=0,
        description="Give up waiting for the job after this long (None = never)",
    )

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("password", mode="before")
    @classmethod
    def _ensure_secret(
        cls, value: SecretStr | str | None, info: ValidationInfo
    ) -> SecretStr:
        if value is None:
            raise ValueError(f"{info.field_name} must be provided")

        if isinstance(value, SecretStr):
            secret_value = value.get_secret_value()
        else:
            secret_value = str(value)

        if not secret_value:
            raise ValueError(f"{info.field_name} must not be empty")

        return value if isinstance(value, SecretStr) else SecretStr(secret_value)

    @field_validator("schematic")
    @classmethod
    def _normalize_schematic(cls, value: str) -> str:
        return to_guid(from_guid(value))

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def schematic_id(self) -> ObjectId:
        return ObjectId.from_guid(self.schematic)

    def poll_policy(self) -> PollPolicy:
        """Build the job polling policy from the poll_* fields."""
        return PollPolicy(
            initial_interval=self.poll_initial_interval_seconds,
            max_interval=self.poll_max_interval_seconds,
            multiplier=self.poll_backoff_multiplier,
            jitter=self.poll_jitter_seconds,
            timeout=self.poll_timeout_seconds,
        )


def load_settings(config_path: Path | str = "config.json") -> Settings:
    """Load settings from a config file, filling gaps from the environment.

    Raises:
        ConfigurationError: If the file or the resulting settings are invalid
    """
    config = load_json_file(config_path, "config")
    try:
        settings = Settings(**config)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    logger.info(
        "config_load_complete",
        path=str(config_path),
        schematic=settings.schematic,
        realm=settings.realm,
    )
    return settings
