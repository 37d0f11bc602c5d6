"""Configuration and logging setup for the Ganeti RAPI client."""

import json
import logging
import os
import pathlib
import sys

import pydantic
import structlog

from . import rapi

CONFIG_ENV_VAR = "GANETI_RAPI_CONFIG_PATH"
PASSWORD_ENV_VAR = "GANETI_RAPI_PASSWORD"
DEFAULT_CONFIG_PATH = "/etc/ganeti/rapi-client.json"
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for the Ganeti RAPI client."""

    rapi_url: str = pydantic.Field(description="Base URL of the Ganeti RAPI")
    username: str | None = pydantic.Field(None, description="RAPI user name")
    password: pydantic.SecretStr | None = pydantic.Field(
        None,
        description="RAPI user password",
    )
    password_file: str | None = pydantic.Field(
        None,
        description="Path to file containing the RAPI user password",
    )
    api_version: str | None = pydantic.Field(
        None,
        description="RAPI version, fetched from the server when unset",
    )
    timeout: float = pydantic.Field(
        rapi.DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    verify_tls: bool = pydantic.Field(True, description="Verify the server certificate")
    log_level: str = pydantic.Field("INFO", description="Logging level")

    def resolve_password(self) -> str | None:
        """Return the password, reading ``password_file`` if needed.

        Raises:
            FileNotFoundError: If password_file is set but doesn't exist.
        """
        if self.password is not None:
            return self.password.get_secret_value()
        if self.password_file is None:
            return None

        path = pathlib.Path(self.password_file)
        if not path.exists():
            msg = f"Password file not found: {self.password_file}"
            raise FileNotFoundError(msg)
        return path.read_text().strip()


def configure_logging(log_level_name: str, rapi_url: str | None = None) -> None:
    """Configure structlog for logfmt output on stderr.

    When ``rapi_url`` is given it is bound to the logging context, so every
    event of the client carries the cluster it talks to.
    """
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg", "rapi_url"),
                drop_missing=True,
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    if rapi_url is not None:
        structlog.contextvars.bind_contextvars(rapi_url=rapi_url)


def load_config(config_path: str) -> ClientConfig:
    """Load configuration from a JSON file.

    The password can be kept out of the file: when the
    ``GANETI_RAPI_PASSWORD`` environment variable is set, it replaces any
    password from the file.
    """
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    if (password := os.environ.get(PASSWORD_ENV_VAR)) is not None:
        data["password"] = password

    return ClientConfig(**data)


def create_rapi_client(config: ClientConfig) -> rapi.GanetiRapiClient:
    """Construct a RAPI client from validated config."""
    client = rapi.GanetiRapiClient(
        base_url=config.rapi_url,
        username=config.username,
        password=config.resolve_password(),
        version=config.api_version,
        timeout=config.timeout,
        verify=config.verify_tls,
    )
    logger.info("Created RAPI client", base_url=config.rapi_url, version=client.version)
    return client


def create_client(config_path: str | None = None) -> rapi.GanetiRapiClient:
    """Create a RAPI client using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
    config = load_config(resolved_path)
    configure_logging(config.log_level, rapi_url=config.rapi_url)
    return create_rapi_client(config)
