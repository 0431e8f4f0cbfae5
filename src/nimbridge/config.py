"""Configuration handling for nimbridge."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .resolver import MODEL_ALIASES

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

relay_logger = logging.getLogger("relay")
relay_logger.setLevel(logging.INFO)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config.yaml"
DEFAULT_BASE_URL = "https://integrate.api.nvidia.com/v1"
DEFAULT_TIMEOUT = 120.0


class ProxySettings(BaseModel):
    """Process-wide settings, resolved once at startup."""

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000
    show_reasoning: bool = False
    thinking_mode: bool = False
    timeout: float = DEFAULT_TIMEOUT
    model_aliases: Dict[str, str] = Field(default_factory=lambda: dict(MODEL_ALIASES))
    log_file: Optional[str] = None

    @property
    def api_configured(self) -> bool:
        return bool(self.api_key)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a config.yaml file.
    Returns an empty dictionary when the file is absent or unreadable.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.exists():
        logger.info(f"No configuration file at {path}, using defaults")
        return {}

    try:
        config = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading {path}: {str(e)}")
        return {}

    if not isinstance(config, dict):
        logger.error(f"Ignoring {path}: expected a mapping at the top level")
        return {}

    logger.info(f"Successfully loaded configuration from {path}")
    return config


def _env_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() == "true"


def _env_timeout(value: Optional[str]) -> Optional[float]:
    # REQUEST_TIMEOUT is given in milliseconds
    if not value:
        return None
    try:
        millis = int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid REQUEST_TIMEOUT value: {value!r}")
        return None
    return millis / 1000.0 if millis > 0 else None


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ProxySettings:
    """
    Build the proxy settings from config.yaml and the environment.

    Environment variables win over the file. When ``environ`` is not given,
    a ``.env`` file is loaded into the process environment first.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    config = load_config(config_path)
    backend = config.get("backend") or {}
    settings = config.get("settings") or {}

    values: Dict[str, Any] = {}

    base_url = environ.get("NIM_API_BASE") or backend.get("url")
    if base_url:
        values["base_url"] = base_url.rstrip("/")

    api_key = environ.get("NIM_API_KEY") or backend.get("api_key")
    if api_key:
        values["api_key"] = api_key

    host = environ.get("HOST") or settings.get("host")
    if host:
        values["host"] = host

    port = environ.get("PORT") or settings.get("port")
    if port:
        try:
            values["port"] = int(port)
        except ValueError:
            logger.warning(f"Ignoring invalid PORT value: {port!r}")

    for field, yaml_key, env_key in (
        ("show_reasoning", "show_reasoning", "SHOW_REASONING"),
        ("thinking_mode", "enable_thinking_mode", "ENABLE_THINKING_MODE"),
    ):
        flag = _env_flag(environ.get(env_key))
        if flag is None and settings.get(yaml_key) is not None:
            value = settings[yaml_key]
            flag = _env_flag(value) if isinstance(value, str) else bool(value)
        if flag is not None:
            values[field] = flag

    timeout = _env_timeout(environ.get("REQUEST_TIMEOUT"))
    if timeout is None and settings.get("timeout"):
        timeout = float(settings["timeout"])
    if timeout is not None:
        values["timeout"] = timeout

    aliases = dict(MODEL_ALIASES)
    aliases.update(config.get("models") or {})
    values["model_aliases"] = aliases

    log_file = environ.get("LOG_FILE") or settings.get("log_file")
    if log_file:
        values["log_file"] = str(log_file)

    proxy_settings = ProxySettings(**values)

    if not proxy_settings.api_configured:
        logger.warning("NIM_API_KEY not set! Chat requests will fail until it is configured.")

    return proxy_settings


def configure_logging(settings: ProxySettings) -> None:
    """Attach a file handler to the relay logger when a log file is configured."""
    if not settings.log_file:
        return

    log_path = Path(settings.log_file).resolve()
    for handler in relay_logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return

    os.makedirs(log_path.parent, exist_ok=True)
    file_handler = logging.FileHandler(str(log_path), mode="a")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    )
    relay_logger.addHandler(file_handler)
    relay_logger.propagate = True
    logger.info(f"Relay events are also logged to {log_path}")
