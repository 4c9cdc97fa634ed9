"""Loading and saving Ankh configuration sources.

A source locator is either a local path (``~`` is expanded) or an
``http://``/``https://`` URL fetched with a single GET.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import yaml
from loguru import logger
from pydantic import ValidationError

from ankh.config.config_data import AnkhConfig
from ankh.errors import ConfigError

REMOTE_TIMEOUT = 10.0


def is_remote(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


def read_config_source(locator: str) -> str:
    """Read the raw text of a configuration source.

    Raises:
        ConfigError: If the source cannot be read
    """
    if is_remote(locator):
        try:
            response = httpx.get(locator, timeout=REMOTE_TIMEOUT, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ConfigError(f"Unable to fetch config source `{locator}`: {e}") from e
        return response.text

    path = Path(locator).expanduser()
    try:
        return path.read_text()
    except OSError as e:
        raise ConfigError(f"Unable to read config source `{locator}`: {e}") from e


def parse_config(content: str, source: str = "") -> AnkhConfig:
    """Parse a configuration document, stamping ``source`` on its contexts and environments.

    Raises:
        ConfigError: If the YAML is malformed or has the wrong structure
    """
    try:
        loaded: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing config source `{source}`: {e}") from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(
            f"Invalid config source `{source}`: expected a mapping at the top level"
        )

    try:
        config = AnkhConfig.model_validate(loaded)
    except ValidationError as e:
        raise ConfigError(f"Invalid config source `{source}`", details=str(e)) from e

    for context in config.contexts.values():
        context.source = source
    for environment in config.environments.values():
        environment.source = source
    return config


def load_config(locator: str) -> AnkhConfig:
    """Read and parse a single configuration source."""
    logger.debug(f"Using config from path {locator}")
    return parse_config(read_config_source(locator), source=locator)


def _string_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Quote strings that would otherwise reload as numbers."""
    if data.isdigit():
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style='"')
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


def dump_config(config: AnkhConfig | dict[str, Any], *, include_source: bool = True) -> str:
    class QuotedDumper(yaml.SafeDumper):
        pass

    QuotedDumper.add_representer(str, _string_representer)

    serialized = (
        config.to_yaml_dict(include_source=include_source)
        if isinstance(config, AnkhConfig)
        else config
    )
    return yaml.dump(
        serialized,
        Dumper=QuotedDumper,
        default_flow_style=False,
        sort_keys=False,
        indent=2,
    )


def save_config(config: AnkhConfig | dict[str, Any], path: Path) -> None:
    """Write configuration to ``path`` through a temporary file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    temp_path.write_text(dump_config(config, include_source=False))
    temp_path.replace(path)
