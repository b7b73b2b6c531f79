"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.backend import DEFAULT_TIMEOUT
from .core.exceptions import ConfigurationError

logger = logging.getLogger("nim-proxy")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

DEFAULT_API_BASE = "https://integrate.api.nvidia.com/v1"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class GatewaySettings:
    """Everything the gateway needs, resolved once at startup.

    Attributes:
        api_base: Backend base URL; `/chat/completions` is appended.
        api_key: Bearer credential for the backend.
        host: Bind address for the HTTP server.
        port: Bind port for the HTTP server.
        timeout: Upper bound in seconds on each backend call.
        show_reasoning: Surface the backend reasoning channel as a
            `<think>` block inside content.
        enable_thinking: Ask the backend to think via chat_template_kwargs.
        model_map: Extra or overriding caller-model -> backend-model entries.
    """

    api_base: str = DEFAULT_API_BASE
    api_key: Optional[str] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    show_reasoning: bool = False
    enable_thinking: bool = True
    model_map: dict[str, str] = field(default_factory=dict)


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path) -> Path:
    """The .env file that sits next to a config file."""
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(path: Optional[str] = None, substitute_env: bool = True) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to NIM_PROXY_CONFIG, or
              configs/config_default.yaml in the project root.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary. Empty when the default config file
        does not exist.

    Raises:
        ConfigurationError: If an explicitly requested file is missing or
            is not valid YAML.
    """
    explicit = path is not None or "NIM_PROXY_CONFIG" in os.environ
    if path is None:
        path = os.getenv("NIM_PROXY_CONFIG", DEFAULT_CONFIG_PATH)

    config_path = resolve_config_path(path)

    if not config_path.exists():
        if explicit:
            logger.error("Config file not found: %s", config_path)
            raise ConfigurationError(f"Config file not found: {config_path}")
        logger.info("No config file at %s; using environment only", config_path)
        return {}

    logger.info("Loading configuration from %s", config_path)

    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path)
        if env_file.exists():
            logger.info("Loading environment variables from %s", env_file)
            env_values = load_env_values(env_file)

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    return data


def _substitute_env_vars(
    obj: Any, env_values: Optional[Mapping[str, str]] = None
) -> Any:
    """Recursively substitute ${VAR_NAME} and $VAR_NAME in string values.

    Values from the .env file win over the process environment. Unset
    variables are left as the literal placeholder.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    "CONFIG ERROR: Environment variable '$%s' is not set! "
                    "The literal placeholder will be used.",
                    var_name,
                )
                return match.group(0)
            return value

        return ENV_VAR_PATTERN.sub(replace_var, obj)
    return obj


def _to_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return None


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _pick(env_name: str, cfg: Mapping[str, Any], key: str) -> Any:
    """Environment variables take priority over the config file."""
    value = os.getenv(env_name)
    if value is not None and value != "":
        return value
    return cfg.get(key)


def _section(cfg: Mapping[str, Any], key: str, prefix: str = "") -> Mapping[str, Any]:
    value = cfg.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{prefix}{key} must be a mapping")
    return value


def load_settings(config: Optional[Mapping[str, Any]] = None) -> GatewaySettings:
    """Build gateway settings from the config file and the environment.

    Environment variables: NIM_API_BASE, NIM_API_KEY, HOST, PORT,
    NIM_PROXY_TIMEOUT, NIM_PROXY_SHOW_REASONING, NIM_PROXY_ENABLE_THINKING.
    """
    if config is None:
        config = load_config()
    proxy_settings = _section(config, "proxy_settings")
    server_cfg = _section(proxy_settings, "server", "proxy_settings.")
    backend_cfg = _section(proxy_settings, "backend", "proxy_settings.")
    features_cfg = _section(proxy_settings, "features", "proxy_settings.")

    api_base = _pick("NIM_API_BASE", backend_cfg, "api_base") or DEFAULT_API_BASE
    api_key = _pick("NIM_API_KEY", backend_cfg, "api_key") or None
    if not api_key:
        logger.warning("NIM_API_KEY is not set; backend requests will be unauthenticated")

    host = _pick("HOST", server_cfg, "host") or DEFAULT_HOST
    port = _to_int(_pick("PORT", server_cfg, "port"))
    timeout = _to_float(_pick("NIM_PROXY_TIMEOUT", backend_cfg, "timeout"))
    show_reasoning = _to_bool(
        _pick("NIM_PROXY_SHOW_REASONING", features_cfg, "show_reasoning")
    )
    enable_thinking = _to_bool(
        _pick("NIM_PROXY_ENABLE_THINKING", features_cfg, "enable_thinking")
    )

    model_map_raw = config.get("model_map") or {}
    if not isinstance(model_map_raw, Mapping):
        raise ConfigurationError("model_map must be a mapping of model names")
    model_map = {str(k): str(v) for k, v in model_map_raw.items()}

    return GatewaySettings(
        api_base=str(api_base),
        api_key=str(api_key) if api_key else None,
        host=str(host),
        port=port if port is not None else DEFAULT_PORT,
        timeout=timeout if timeout and timeout > 0 else DEFAULT_TIMEOUT,
        show_reasoning=show_reasoning if show_reasoning is not None else False,
        enable_thinking=enable_thinking if enable_thinking is not None else True,
        model_map=model_map,
    )
