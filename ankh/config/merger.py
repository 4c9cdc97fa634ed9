"""Merging of configuration sources into one effective configuration.

Sources are processed breadth-first from a FIFO queue seeded with the
requested locators, following each source's ``include`` list. A visited set
keyed by locator guarantees termination on include cycles and makes
duplicate locators no-ops.

Named entries (contexts and environments) are first-seen wins: a later
source that redefines a name is a conflict, fatal unless configuration
errors are ignored, in which case the earlier definition is kept and a
warning is logged.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable

from loguru import logger

from ankh.config.config_data import AnkhConfig
from ankh.config.config_loader import load_config
from ankh.errors import RERUN_HINT, AnkhError, ConfigError

ConfigLoader = Callable[[str], AnkhConfig]


def split_locators(value: str | Iterable[str]) -> list[str]:
    """Split a comma-separated locator list, dropping empty entries."""
    items = value.split(",") if isinstance(value, str) else list(value)
    return [item.strip() for item in items if item.strip()]


def dedup(items: Iterable[str]) -> list[str]:
    """Order-preserving de-duplication."""
    return list(dict.fromkeys(items))


def _complain(message: str, ignore_config_errors: bool) -> None:
    if not ignore_config_errors:
        raise ConfigError(f"{message} {RERUN_HINT}")
    logger.warning(message)


def find_conflicts(merged: AnkhConfig, fragment: AnkhConfig, locator: str) -> list[str]:
    """Describe every context/environment name ``fragment`` would redefine."""
    conflicts = []
    for name in fragment.contexts:
        if name in merged.contexts:
            conflicts.append(
                f"Context `{name}` already defined from config source "
                f"`{merged.contexts[name].source}`, would have been overriden by "
                f"config source `{locator}`."
            )
    for name in fragment.environments:
        if name in merged.environments:
            conflicts.append(
                f"Environment `{name}` already defined from config source "
                f"`{merged.environments[name].source}`, would have been overriden by "
                f"config source `{locator}`."
            )
    return conflicts


def merge_into(merged: AnkhConfig, fragment: AnkhConfig) -> None:
    """Merge ``fragment`` into ``merged`` in place.

    New names are added, existing names are left untouched. Scalar settings
    are only filled while still unset. Include lists are concatenated and
    de-duplicated once merging is complete.
    """
    for name, context in fragment.contexts.items():
        merged.contexts.setdefault(name, context)
    for name, environment in fragment.environments.items():
        merged.environments.setdefault(name, environment)

    if not merged.current_context:
        merged.current_context = fragment.current_context
    if not merged.helm.tag_value_name:
        merged.helm.tag_value_name = fragment.helm.tag_value_name
    if not merged.helm.registry:
        merged.helm.registry = fragment.helm.registry
    if not merged.docker.registry:
        merged.docker.registry = fragment.docker.registry

    merged.include.extend(fragment.include)


def merge_configs(
    locators: str | Iterable[str],
    *,
    ignore_config_errors: bool = False,
    loader: ConfigLoader = load_config,
) -> AnkhConfig:
    """Load and merge configuration sources.

    Args:
        locators: Comma-separated string or iterable of source locators
        ignore_config_errors: Downgrade load failures and name conflicts to warnings
        loader: Callable that loads one locator (injectable for tests)

    Returns:
        The merged configuration

    Raises:
        ConfigError: On an unreadable/unparsable source or a name conflict,
                     unless ``ignore_config_errors`` is set
    """
    merged = AnkhConfig()
    queue = deque(split_locators(locators))
    visited: set[str] = set()

    while queue:
        locator = queue.popleft()
        if locator in visited:
            logger.debug(f"Already parsed {locator}")
            continue

        try:
            fragment = loader(locator)
        except AnkhError as e:
            if not ignore_config_errors:
                raise ConfigError(f"{e.message} {RERUN_HINT}", details=e.details) from e
            logger.warning(e.message)
            fragment = AnkhConfig()

        for conflict in find_conflicts(merged, fragment, locator):
            _complain(conflict, ignore_config_errors)

        merge_into(merged, fragment)

        queue.extend(split_locators(fragment.include))
        visited.add(locator)

    merged.include = dedup(merged.include)
    return merged
