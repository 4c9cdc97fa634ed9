"""Ankh configuration: models, source loading, merging and context selection."""

from .config_data import AnkhConfig, Context, DockerConfig, Environment, HelmConfig
from .config_loader import dump_config, load_config, parse_config, save_config
from .merger import merge_configs, split_locators
from .resolver import check_context, contexts_for_run, switch_context, validate_context

__all__ = [
    "AnkhConfig",
    "Context",
    "DockerConfig",
    "Environment",
    "HelmConfig",
    "check_context",
    "contexts_for_run",
    "dump_config",
    "load_config",
    "merge_configs",
    "parse_config",
    "save_config",
    "split_locators",
    "switch_context",
    "validate_context",
]
