"""Tests for CLI context dependency injection."""

from pathlib import Path
from unittest.mock import Mock, patch

import click
import pytest
import typer

from ankh.cli.context import (
    CLIContext,
    ExecutionContext,
    GlobalOptions,
    build_cli_context,
    get_cli_context,
    parse_set_values,
)
from ankh.cli.deployment.constants import Mode


def test_cli_context_is_immutable():
    """Test that CLIContext is frozen/immutable."""
    ctx = CLIContext(
        console=Mock(),
        project_root=Path("/test"),
        commands=Mock(),
        options=GlobalOptions(),
    )

    with pytest.raises(AttributeError):
        ctx.console = Mock()  # type: ignore[misc]


def test_execution_context_is_immutable(make_execution_context):
    ctx = make_execution_context()

    with pytest.raises(AttributeError):
        ctx.mode = Mode.APPLY  # type: ignore[misc]


@patch("ankh.cli.context.Path.cwd")
def test_build_cli_context_creates_all_dependencies(mock_cwd):
    """Test that build_cli_context creates all required dependencies."""
    mock_cwd.return_value = Path("/test/project")

    ctx = build_cli_context()

    assert ctx.console is not None
    assert ctx.project_root == Path("/test/project")
    assert ctx.commands.project_root == Path("/test/project")
    assert ctx.options.context == ""
    assert ctx.options.set_values == {}


def test_get_cli_context_from_typer_context():
    """Test that get_cli_context retrieves from Typer context."""
    mock_ctx_obj = CLIContext(
        console=Mock(),
        project_root=Path("/test"),
        commands=Mock(),
        options=GlobalOptions(),
    )
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = mock_ctx_obj

    assert get_cli_context(typer_ctx) is mock_ctx_obj


@patch("ankh.cli.context.build_cli_context")
def test_get_cli_context_falls_back_to_new_instance(mock_build):
    """Test that get_cli_context builds a context outside of a command."""
    mock_build.return_value = Mock()

    with patch.object(click, "get_current_context", return_value=None):
        assert get_cli_context() is mock_build.return_value


class TestParseSetValues:
    def test_parses_pairs(self):
        assert parse_set_values(["a=1", "b.c=two"]) == {"a": "1", "b.c": "two"}

    def test_skips_malformed_pairs(self):
        assert parse_set_values(["novalue", "a=b=c", "ok=1"]) == {"ok": "1"}

    def test_later_pairs_win(self):
        assert parse_set_values(["a=1", "a=2"]) == {"a": "2"}


class TestExecutionContextFromOptions:
    def make_cli(self, **options) -> CLIContext:
        return CLIContext(
            console=Mock(),
            project_root=Path("/test"),
            commands=Mock(),
            options=GlobalOptions(**options),
        )

    def test_defaults_to_current_context(self, config_path: str):
        cli = self.make_cli(ankh_config=config_path, set_values={"image.tag": "v1"})

        ctx = cli.execution_context(Mode.APPLY, filters=["Deployment"], dry_run=True)

        assert isinstance(ctx, ExecutionContext)
        assert ctx.context_name == "minikube"
        assert ctx.context.kube_context == "minikube"
        assert ctx.filters == ("Deployment",)
        assert ctx.dry_run is True
        assert ctx.helm_set_values == {"image.tag": "v1"}

    def test_context_option_overrides_current_context(self, config_path: str):
        cli = self.make_cli(ankh_config=config_path, context="prod-west")

        ctx = cli.execution_context(Mode.GET)

        assert ctx.context_name == "prod-west"
        assert ctx.config.current_context == "prod-west"

    def test_environment_leaves_context_unselected(self, config_path: str):
        cli = self.make_cli(ankh_config=config_path, environment="production")

        ctx = cli.execution_context(Mode.GET)

        assert ctx.context_name == ""
        assert ctx.environment == "production"

    def test_namespace_override_is_carried(self, config_path: str):
        cli = self.make_cli(ankh_config=config_path, namespace="")

        assert cli.execution_context(Mode.TEMPLATE).namespace == ""

    def test_helm_registry_prefers_context(self, make_execution_context, ankh_config):
        context = ankh_config.contexts["minikube"].model_copy(
            update={"helm_registry_url": "https://context-charts"}
        )

        assert make_execution_context(context=context).helm_registry == "https://context-charts"
        assert make_execution_context().helm_registry == "https://charts.example.com"
