"""Tests for Helm rendering and chart registry commands."""

import io
import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
import yaml

from ankh.cli.deployment.constants import Mode
from ankh.cli.deployment.descriptor import Chart
from ankh.cli.deployment.resolution import ResolvedChart
from ankh.cli.deployment.shell_commands.helm import HelmCommands, flatten_values
from ankh.cli.deployment.shell_commands.types import CommandResult
from ankh.config.resolver import switch_context
from ankh.errors import ExecutionError, ResolutionError

INDEX = """
apiVersion: v1
entries:
  api:
    - version: 1.0.0
      created: "2024-01-01T00:00:00Z"
    - version: 1.2.0
      created: "2024-03-01T00:00:00Z"
    - version: 1.1.0
      created: "2024-02-01T00:00:00Z"
  worker:
    - version: 0.1.0
      created: "2024-01-01T00:00:00Z"
"""


def chart_archive(name: str, files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for relative, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(f"{name}/{relative}")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def response(text: str = "", content: bytes = b"") -> MagicMock:
    mock = MagicMock()
    mock.text = text
    mock.content = content
    return mock


class TestFlattenValues:
    def test_nested_keys_are_dotted(self) -> None:
        assert flatten_values({"a": {"b": 1, "c": {"d": "x"}}, "e": True}, "global") == [
            "global.a.b=1",
            "global.a.c.d=x",
            "global.e=True",
        ]


class TestHelmTemplate:
    """Tests for building and running ``helm template``."""

    @pytest.fixture
    def mock_runner(self) -> MagicMock:
        runner = MagicMock()
        runner.run.return_value = CommandResult(success=True, stdout="---\nkind: A\n")
        return runner

    @pytest.fixture
    def helm_commands(self, mock_runner: MagicMock) -> HelmCommands:
        return HelmCommands(mock_runner, client=MagicMock())

    @pytest.fixture
    def local_chart(self, tmp_path: Path) -> ResolvedChart:
        chart_dir = tmp_path / "charts" / "api"
        chart_dir.mkdir(parents=True)
        chart = Chart(
            name="api",
            path="charts/api",
            set_values={"replicas": "2"},
            default_values={"debug": False},
            values={"dev": {"debug": True}},
            resource_profiles={"constrained": {"cpu": "100m"}},
        )
        return ResolvedChart(
            chart=chart,
            namespace="apps",
            tag="v1",
            tag_value_name="image.tag",
            source=str(tmp_path / "ankh.yaml"),
        )

    def test_command_layout_and_set_order(
        self, helm_commands: HelmCommands, local_chart: ResolvedChart, make_execution_context, tmp_path
    ) -> None:
        """Global values come first and command-line values last."""
        ctx = make_execution_context(
            release="r1",
            helm_set_values={"extra": "yes"},
            context=make_execution_context().context.model_copy(
                update={"global_values": {"domain": "example.com"}, "release": "r1"}
            ),
        )

        cmd = helm_commands.template_command(ctx, local_chart, "apps")

        assert cmd[:6] == [
            "helm",
            "template",
            "r1",
            str(tmp_path / "charts" / "api"),
            "--namespace",
            "apps",
        ]
        set_values = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "--set"]
        assert set_values == [
            "global.domain=example.com",
            "replicas=2",
            "image.tag=v1",
            "extra=yes",
        ]

    def test_values_files_are_layered(
        self, helm_commands: HelmCommands, local_chart: ResolvedChart, make_execution_context
    ) -> None:
        """Default values, environment class values and resource profile values in order."""
        ctx = make_execution_context()

        cmd = helm_commands.template_command(ctx, local_chart, "apps")

        files = [Path(cmd[i + 1]) for i, arg in enumerate(cmd) if arg == "-f"]
        assert [f.name for f in files] == [
            "default-values.yaml",
            "values-dev.yaml",
            "resource-profile-constrained.yaml",
        ]
        assert yaml.safe_load(files[1].read_text()) == {"debug": True}

    def test_uses_context_release(
        self,
        helm_commands: HelmCommands,
        local_chart: ResolvedChart,
        make_execution_context,
        ankh_config,
    ) -> None:
        """The release configured on the context names the render."""
        ctx = make_execution_context(
            context=switch_context(ankh_config, "minikube"), release=""
        )

        cmd = helm_commands.template_command(ctx, local_chart, "apps")

        assert cmd[:3] == ["helm", "template", "minikube"]

    def test_release_option_overrides_context_release(
        self,
        helm_commands: HelmCommands,
        local_chart: ResolvedChart,
        make_execution_context,
        ankh_config,
    ) -> None:
        ctx = make_execution_context(
            context=switch_context(ankh_config, "minikube", release="canary"), release="canary"
        )

        assert helm_commands.template_command(ctx, local_chart, "apps")[2] == "canary"

    def test_generates_name_without_release(
        self, helm_commands: HelmCommands, local_chart: ResolvedChart, make_execution_context
    ) -> None:
        context = make_execution_context().context.model_copy(update={"release": ""})

        cmd = helm_commands.template_command(
            make_execution_context(context=context), local_chart, "apps"
        )

        assert cmd[2] == "--generate-name"

    def test_template_concatenates_output(
        self,
        helm_commands: HelmCommands,
        mock_runner: MagicMock,
        local_chart: ResolvedChart,
        make_execution_context,
    ) -> None:
        result = helm_commands.template(make_execution_context(), [local_chart, local_chart], "apps")

        assert result == "---\nkind: A\n---\nkind: A\n"
        assert mock_runner.run.call_count == 2

    def test_template_failure_raises(
        self,
        helm_commands: HelmCommands,
        mock_runner: MagicMock,
        local_chart: ResolvedChart,
        make_execution_context,
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=False, stderr="boom", returncode=1)

        with pytest.raises(ExecutionError, match="helm template for chart api"):
            helm_commands.template(make_execution_context(), [local_chart], "apps")

    def test_explain_returns_commands_without_running(
        self,
        helm_commands: HelmCommands,
        mock_runner: MagicMock,
        local_chart: ResolvedChart,
        make_execution_context,
    ) -> None:
        result = helm_commands.template(make_execution_context(Mode.EXPLAIN), [local_chart], "apps")

        assert result.startswith("helm template minikube ")
        assert result.endswith(" && \\\n")
        mock_runner.run.assert_not_called()


class TestHelmFetch:
    """Tests for downloading chart archives."""

    def test_fetch_extracts_archive(self, tmp_path: Path) -> None:
        client = MagicMock()
        client.get.return_value = response(
            content=chart_archive("api", {"Chart.yaml": "name: api\nversion: 1.0.0\n"})
        )

        chart_dir = HelmCommands(MagicMock(), client).fetch(
            "https://charts.example.com/", "api", "1.0.0", tmp_path
        )

        client.get.assert_called_once_with("https://charts.example.com/api-1.0.0.tgz")
        assert (chart_dir / "Chart.yaml").is_file()

    def test_fetch_without_registry(self, tmp_path: Path) -> None:
        with pytest.raises(ExecutionError, match="No Helm registry configured"):
            HelmCommands(MagicMock(), MagicMock()).fetch("", "api", "1.0.0", tmp_path)

    def test_fetch_http_error(self, tmp_path: Path) -> None:
        client = MagicMock()
        client.get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(ExecutionError, match="Unable to fetch chart api@1.0.0"):
            HelmCommands(MagicMock(), client).fetch("https://r", "api", "1.0.0", tmp_path)


class TestHelmRegistry:
    """Tests for chart registry queries."""

    @pytest.fixture
    def client(self) -> MagicMock:
        client = MagicMock()
        client.get.return_value = response(text=INDEX)
        return client

    def test_list_versions_newest_first(self, client: MagicMock) -> None:
        versions = HelmCommands(MagicMock(), client).list_versions("https://r", "api")

        assert versions == ["1.2.0", "1.1.0", "1.0.0"]
        client.get.assert_called_once_with("https://r/index.yaml")

    def test_unknown_chart(self, client: MagicMock) -> None:
        with pytest.raises(ResolutionError, match="Chart `nope` not found"):
            HelmCommands(MagicMock(), client).list_versions("https://r", "nope")

    def test_list_charts_limits_versions(self, client: MagicMock) -> None:
        charts = HelmCommands(MagicMock(), client).list_charts("https://r", num=2)

        assert charts == {"api": ["1.2.0", "1.1.0"], "worker": ["0.1.0"]}

    def test_list_charts_zero_means_all(self, client: MagicMock) -> None:
        charts = HelmCommands(MagicMock(), client).list_charts("https://r", num=0)

        assert len(charts["api"]) == 3

    def test_inspect_prints_templates(self, tmp_path: Path) -> None:
        client = MagicMock()
        client.get.side_effect = [
            response(text=INDEX),
            response(
                content=chart_archive(
                    "api",
                    {
                        "Chart.yaml": "name: api\n",
                        "templates/service.yaml": "kind: Service",
                        "templates/deployment.yaml": "kind: Deployment",
                    },
                )
            ),
        ]

        output = HelmCommands(MagicMock(), client).inspect("https://r", "api", str(tmp_path))

        assert output.startswith("# Chart: api\n")
        assert output.index("# Source: api/templates/deployment.yaml") < output.index(
            "# Source: api/templates/service.yaml"
        )
        assert "kind: Service" in output


class TestHelmLint:
    def test_clean_manifest(self) -> None:
        manifest = (
            "---\n# Source: api/templates/svc.yaml\n"
            "apiVersion: v1\nkind: Service\nmetadata:\n  name: api\n"
        )

        assert HelmCommands(MagicMock(), MagicMock()).lint(manifest, "apps") == []

    def test_reports_missing_fields_and_namespace_mismatch(self) -> None:
        manifest = (
            "---\n# Source: api/templates/svc.yaml\n"
            "kind: Service\nmetadata:\n  name: api\n  namespace: other\n"
        )

        errors = HelmCommands(MagicMock(), MagicMock()).lint(manifest, "apps")

        assert errors == [
            "api/templates/svc.yaml: missing `apiVersion`",
            "api/templates/svc.yaml: object has namespace `other` "
            "but is being rendered for namespace `apps`",
        ]


class TestHelmChartMaintenance:
    """Tests for publishing and bumping local charts."""

    @pytest.fixture
    def chart_dir(self, tmp_path: Path) -> Path:
        chart_dir = tmp_path / "api"
        chart_dir.mkdir()
        (chart_dir / "Chart.yaml").write_text("name: api\nversion: 1.2.3\ndescription: API\n")
        return chart_dir

    def test_bump_rewrites_chart_yaml(self, chart_dir: Path) -> None:
        old, new = HelmCommands(MagicMock(), MagicMock()).bump(chart_dir, "minor")

        assert (old, new) == ("1.2.3", "1.3.0")
        metadata = yaml.safe_load((chart_dir / "Chart.yaml").read_text())
        assert metadata == {"name": "api", "version": "1.3.0", "description": "API"}

    def test_bump_rejects_non_semver(self, chart_dir: Path) -> None:
        (chart_dir / "Chart.yaml").write_text("name: api\nversion: latest\n")

        with pytest.raises(ExecutionError, match="not a semantic version"):
            HelmCommands(MagicMock(), MagicMock()).bump(chart_dir)

    def test_publish_refuses_existing_version(self, chart_dir: Path, tmp_path: Path) -> None:
        client = MagicMock()
        client.get.return_value = response(
            text="entries:\n  api:\n    - version: 1.2.3\n"
        )

        with pytest.raises(ExecutionError, match="already exists"):
            HelmCommands(MagicMock(), client).publish("https://r", chart_dir, str(tmp_path / "out"))

        client.post.assert_not_called()

    def test_publish_packages_and_uploads(self, chart_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        runner = MagicMock()

        def package(cmd, **kwargs):
            out.mkdir(parents=True, exist_ok=True)
            (out / "api-1.2.3.tgz").write_bytes(b"archive")
            return CommandResult(success=True)

        runner.run.side_effect = package
        client = MagicMock()
        client.get.return_value = response(text="entries: {}\n")

        published = HelmCommands(runner, client).publish("https://r", chart_dir, str(out))

        assert published == "api@1.2.3"
        assert runner.run.call_args[0][0][:3] == ["helm", "package", str(chart_dir)]
        client.post.assert_called_once()
        assert client.post.call_args[0][0] == "https://r/api/charts"
        assert client.post.call_args.kwargs["content"] == b"archive"
