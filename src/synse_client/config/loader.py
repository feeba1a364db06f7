"""Options loading with YAML and environment override support."""

from __future__ import annotations

import os
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from synse_client.api.exceptions import ConfigurationError
from synse_client.config.settings import CONFIG_PATH_ENV, ClientOptions

# Thread-safe global options storage
_options: Optional[ClientOptions] = None
_options_lock = threading.Lock()


def load_yaml_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file if specified.

    Args:
        config_path: Path to YAML config file. If None, checks SYNSE_CONFIG_PATH.

    Returns:
        Dict of configuration values from YAML, or empty dict if no file.
    """
    path = config_path or os.environ.get(CONFIG_PATH_ENV)

    if not path:
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            hint=f"Point {CONFIG_PATH_ENV} at a valid YAML file, or unset it.",
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {e}")
    except PermissionError:
        raise ConfigurationError(f"Cannot read configuration file {path}: permission denied")


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """Format Pydantic validation errors into user-friendly messages."""
    messages: List[str] = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        input_val = error.get("input")

        if not loc:
            messages.append(f"Configuration error: {msg}")
        elif "missing" in msg.lower() or "required" in msg.lower():
            env_name = "SYNSE_" + loc.upper().replace(".", "__")
            messages.append(
                f"Configuration error: '{loc}' is required. "
                f"Set {env_name} or add '{loc}:' to the config file."
            )
        elif input_val is not None and not isinstance(input_val, dict):
            messages.append(f"Configuration error: '{loc}' {msg}, got: {input_val}")
        else:
            messages.append(f"Configuration error: '{loc}' {msg}")

    return messages


def build_options(
    options: Union[ClientOptions, Mapping[str, Any], None] = None,
    **overrides: Any,
) -> ClientOptions:
    """Validate options given as a model, a mapping, or keyword arguments.

    Args:
        options: Existing options, or a mapping of option values.
        **overrides: Option values applied on top of ``options``.

    Returns:
        Validated, immutable ClientOptions.

    Raises:
        ConfigurationError: If the options are invalid.
    """
    if isinstance(options, ClientOptions) and not overrides:
        return options

    values: Dict[str, Any] = {}
    if isinstance(options, ClientOptions):
        values.update(options.model_dump())
    elif options is not None:
        values.update(options)
    values.update(overrides)

    try:
        return ClientOptions(**values)
    except ValidationError as e:
        raise ConfigurationError("\n".join(format_validation_errors(e.errors())))


def load_options(config_path: Optional[str] = None) -> ClientOptions:
    """Load and validate options from the environment and YAML file.

    Options are loaded with the following precedence:
    1. Environment variables (highest priority)
    2. .env file
    3. YAML configuration file
    4. Default values (lowest priority)

    Args:
        config_path: Optional path to YAML config file (sets SYNSE_CONFIG_PATH).

    Returns:
        Validated ClientOptions instance.

    Raises:
        ConfigurationError: If the file cannot be read or validation fails.
    """
    global _options

    if config_path:
        os.environ[CONFIG_PATH_ENV] = config_path

    # Validate YAML file exists and is readable (gives better errors)
    # The actual loading happens in the pydantic settings source
    _ = load_yaml_config()

    try:
        loaded = ClientOptions()  # type: ignore[call-arg]
    except ValidationError as e:
        raise ConfigurationError("\n".join(format_validation_errors(e.errors())))

    with _options_lock:
        _options = loaded
    return loaded


def get_options() -> ClientOptions:
    """Get the options most recently loaded by load_options().

    Raises:
        ConfigurationError: If options have not been loaded.
    """
    with _options_lock:
        if _options is None:
            raise ConfigurationError("Options not loaded. Call load_options() first.")
        return _options


def reload_options() -> ClientOptions:
    """Discard cached options and load them again."""
    global _options
    with _options_lock:
        _options = None
    return load_options()
