"""CLI context, global options and the per-invocation execution context."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

import click
import typer
from loguru import logger

from ankh.cli.deployment.constants import DEFAULT_ANKH_FILE, Mode
from ankh.cli.deployment.shell_commands import ShellCommands
from ankh.cli.shared.console import CLIConsole, console
from ankh.config import AnkhConfig, Context, merge_configs, split_locators
from ankh.utils.paths import (
    default_ankh_config_path,
    default_data_dir,
    default_kube_config_path,
    run_data_dir,
)


def parse_set_values(pairs: Iterable[str]) -> dict[str, str]:
    """Parse repeated ``--set key=value`` arguments; malformed pairs are skipped."""
    values: dict[str, str] = {}
    for pair in pairs:
        parts = pair.split("=")
        if len(parts) != 2:
            logger.debug(f"Malformed helm set value '{pair}', skipping...")
            continue
        values[parts[0]] = parts[1]
    return values


@dataclass(frozen=True)
class GlobalOptions:
    """Flags accepted before any command."""

    verbose: bool = False
    quiet: bool = False
    ignore_config_errors: bool = False
    ankh_config: str = field(default_factory=default_ankh_config_path)
    kube_config: str = field(default_factory=default_kube_config_path)
    release: str = ""
    context: str = ""
    environment: str = ""
    namespace: str | None = None
    data_dir: str = field(default_factory=lambda: run_data_dir(default_data_dir()))
    set_values: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionContext:
    """Everything one pipeline run needs, fixed before rendering starts.

    ``namespace`` is None when no override was given, which is distinct
    from an explicit empty namespace.
    """

    mode: Mode
    config: AnkhConfig
    context_name: str = ""
    context: Context = field(default_factory=Context)
    environment: str = ""
    ankh_file_path: str = DEFAULT_ANKH_FILE
    chart: str = ""
    dry_run: bool = False
    namespace: str | None = None
    filters: tuple[str, ...] = ()
    extra_args: tuple[str, ...] = ()
    passthrough_args: tuple[str, ...] = ()
    helm_set_values: dict[str, str] = field(default_factory=dict)
    release: str = ""
    kube_config_path: str = ""
    data_dir: str = ""
    describe: bool = False
    ignore_config_errors: bool = False
    ignore_context_and_env: bool = False

    def with_context(self, name: str, context: Context) -> ExecutionContext:
        return replace(self, context_name=name, context=context)

    @property
    def helm_registry(self) -> str:
        """The active context's chart registry, else the configured one."""
        return self.context.helm_registry_url or self.config.helm_registry()


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    commands: ShellCommands
    options: GlobalOptions

    def load_config(self, *, ignore_config_errors: bool | None = None) -> AnkhConfig:
        """Merge every configured Ankh config source."""
        options = self.options
        logger.debug(f"Using AnkhConfigPath {options.ankh_config}")
        if ignore_config_errors is None:
            ignore_config_errors = options.ignore_config_errors
        config = merge_configs(
            split_locators(options.ankh_config),
            ignore_config_errors=ignore_config_errors,
        )
        if options.context:
            config = config.model_copy(update={"current_context": options.context})
        return config

    def execution_context(
        self,
        mode: Mode,
        *,
        ankh_file_path: str = DEFAULT_ANKH_FILE,
        chart: str = "",
        dry_run: bool = False,
        filters: Sequence[str] = (),
        extra_args: Sequence[str] = (),
        passthrough_args: Sequence[str] = (),
        describe: bool = False,
    ) -> ExecutionContext:
        options = self.options
        config = self.load_config()
        context_name = options.context or ("" if options.environment else config.current_context)
        return ExecutionContext(
            mode=mode,
            config=config,
            context_name=context_name,
            context=config.contexts.get(context_name, Context()),
            environment=options.environment,
            ankh_file_path=ankh_file_path,
            chart=chart,
            dry_run=dry_run,
            namespace=options.namespace,
            filters=tuple(filters),
            extra_args=tuple(extra_args),
            passthrough_args=tuple(passthrough_args),
            helm_set_values=dict(options.set_values),
            release=options.release,
            kube_config_path=options.kube_config,
            data_dir=options.data_dir,
            describe=describe,
            ignore_config_errors=options.ignore_config_errors,
        )


def build_cli_context(options: GlobalOptions | None = None) -> CLIContext:
    """Build a fresh CLIContext."""
    project_root = Path.cwd()
    return CLIContext(
        console=console,
        project_root=project_root,
        commands=ShellCommands(project_root, prompter=console),
        options=options or GlobalOptions(),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
