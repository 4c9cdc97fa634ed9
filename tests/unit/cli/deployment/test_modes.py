"""Tests for per-mode dispatch of rendered output."""

from unittest.mock import MagicMock

import pytest

from ankh.cli.deployment.constants import Mode
from ankh.cli.deployment.modes import ModeDispatcher, format_explain
from ankh.errors import ExecutionError, LintError


@pytest.fixture
def commands() -> MagicMock:
    return MagicMock()


class TestFormatExplain:
    def test_wraps_helm_commands_and_pipes_to_kubectl(self) -> None:
        helm = "helm template a && \\\nhelm template b && \\\n"

        result = format_explain(helm, "kubectl apply -f -")

        assert result == "(helm template a && \\\nhelm template b) | \\\nkubectl apply -f -"


class TestModeDispatcher:
    def test_template_returns_manifest(self, commands, make_execution_context) -> None:
        result = ModeDispatcher(commands).dispatch(make_execution_context(), "kind: A\n", "ns")

        assert result.output == "kind: A\n"

    @pytest.mark.parametrize(
        ("mode", "operation"),
        [
            (Mode.APPLY, "apply"),
            (Mode.ROLLBACK, "rollback"),
            (Mode.GET, "get"),
            (Mode.PODS, "pods"),
            (Mode.EXEC, "exec"),
            (Mode.LOGS, "logs"),
        ],
    )
    def test_kubectl_modes_delegate(
        self, commands, make_execution_context, mode: Mode, operation: str
    ) -> None:
        getattr(commands.kubectl, operation).return_value = "done"
        ctx = make_execution_context(mode)

        result = ModeDispatcher(commands).dispatch(ctx, "manifest", "ns")

        assert result.output == "done"
        getattr(commands.kubectl, operation).assert_called_once_with(ctx, "manifest", "ns")

    def test_explain_combines_helm_and_kubectl(self, commands, make_execution_context) -> None:
        commands.kubectl.explain.return_value = "kubectl apply -f -"

        result = ModeDispatcher(commands).dispatch(
            make_execution_context(Mode.EXPLAIN), "helm template a && \\\n", "ns"
        )

        assert result.output == "(helm template a) | \\\nkubectl apply -f -"

    def test_lint_reports_every_error(
        self, commands, make_execution_context, captured_logs
    ) -> None:
        commands.helm.lint.return_value = ["first", "second"]

        with pytest.raises(LintError) as excinfo:
            ModeDispatcher(commands).dispatch(make_execution_context(Mode.LINT), "m", "ns")

        assert excinfo.value.errors == ["first", "second"]
        warnings = [msg for level, msg in captured_logs if level == "WARNING"]
        assert warnings == ["first", "second"]

    def test_clean_lint_has_no_output(
        self, commands, make_execution_context, captured_logs
    ) -> None:
        commands.helm.lint.return_value = []

        result = ModeDispatcher(commands).dispatch(make_execution_context(Mode.LINT), "m", "ns")

        assert result.output == ""
        assert ("INFO", "No issues.") in captured_logs

    def test_diff_failure_warns_with_kubectl_version(
        self, commands, make_execution_context, captured_logs
    ) -> None:
        commands.kubectl.diff.side_effect = ExecutionError("diff failed")
        commands.kubectl.version.return_value = "v1.9.0\n"

        with pytest.raises(ExecutionError):
            ModeDispatcher(commands).dispatch(make_execution_context(Mode.DIFF), "m", "ns")

        assert any("`v1.9.0`" in msg for level, msg in captured_logs if level == "WARNING")

    def test_kubectl_version_is_queried_once(self, commands) -> None:
        commands.kubectl.version.return_value = "v1.29.0"
        dispatcher = ModeDispatcher(commands)

        assert dispatcher.kubectl_version == "v1.29.0"
        assert dispatcher.kubectl_version == "v1.29.0"
        commands.kubectl.version.assert_called_once()
