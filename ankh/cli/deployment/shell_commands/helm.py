"""Helm command abstractions.

This module renders charts with ``helm template`` and talks to a Helm chart
registry (an HTTP server exposing ``index.yaml`` and chart archives) for
version listing, inspection and publishing.
"""

from __future__ import annotations

import io
import re
import shlex
import tarfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import yaml
from loguru import logger

from ankh.cli.deployment.constants import (
    CHART_RESOURCE_PROFILES_FILE,
    CHART_VALUES_FILE,
    HTTP_TIMEOUT,
    Mode,
)
from ankh.cli.deployment.descriptor import parse_chart_spec
from ankh.errors import ExecutionError, ResolutionError
from ankh.utils.versions import bump_semver, version_sort_key

if TYPE_CHECKING:
    from ankh.cli.context import ExecutionContext
    from ankh.cli.deployment.resolution import ResolvedChart

    from .runner import CommandRunner

EXPLAIN_SEPARATOR = " && \\\n"

_DOCUMENT_SEPARATOR = re.compile(r"^---", re.MULTILINE)
_SOURCE_COMMENT = re.compile(r"^# Source: (?P<source>.+)$", re.MULTILINE)


def flatten_values(values: Mapping[str, Any], prefix: str = "") -> list[str]:
    """Flatten a nested mapping into ``a.b.c=value`` pairs for ``--set``."""
    pairs: list[str] = []
    for key, value in values.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            pairs.extend(flatten_values(value, path))
        else:
            pairs.append(f"{path}={value}")
    return pairs


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Rendering charts (template, explain)
    - Checking rendered output (lint)
    - Registry queries (list versions, list charts, inspect)
    - Chart maintenance (publish, bump)
    """

    def __init__(self, runner: CommandRunner, client: httpx.Client | None = None) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
            client: HTTP client used for registry requests
        """
        self._runner = runner
        self._client = client or httpx.Client(timeout=HTTP_TIMEOUT, follow_redirects=True)

    # =========================================================================
    # Rendering
    # =========================================================================

    def version(self) -> str:
        """Return the helm client version string."""
        result = self._runner.run(["helm", "version", "--short"])
        if not result.success:
            raise ExecutionError("Failed to get helm version info", details=result.output)
        return result.stdout

    def template(
        self,
        ctx: ExecutionContext,
        charts: Sequence[ResolvedChart],
        namespace: str,
    ) -> str:
        """Render ``charts`` into one manifest stream for ``namespace``.

        In explain mode nothing is rendered; the helm commands that would
        run are returned instead, each followed by `` && \\``.

        Raises:
            ExecutionError: If a chart cannot be fetched or fails to render
        """
        commands = [self.template_command(ctx, chart, namespace) for chart in charts]

        if ctx.mode is Mode.EXPLAIN:
            return "".join(shlex.join(cmd) + EXPLAIN_SEPARATOR for cmd in commands)

        outputs = []
        for chart, cmd in zip(charts, commands, strict=True):
            result = self._runner.run(cmd)
            if not result.success:
                raise ExecutionError(
                    f"Error running helm template for chart {chart.name}",
                    details=result.output,
                )
            outputs.append(result.stdout)
        return "".join(outputs)

    def template_command(
        self, ctx: ExecutionContext, chart: ResolvedChart, namespace: str
    ) -> list[str]:
        """Build the ``helm template`` invocation for one resolved chart."""
        work_dir = Path(ctx.data_dir) / chart.name
        chart_dir = self.chart_dir(ctx, chart, work_dir)

        cmd = ["helm", "template"]
        # switch_context has already folded -r/--release into the context
        release = ctx.context.release or ctx.release
        if release:
            cmd.append(release)
        else:
            cmd.append("--generate-name")
        cmd.extend([str(chart_dir), "--namespace", namespace])

        for values_file in self._values_files(ctx, chart, chart_dir, work_dir):
            cmd.extend(["-f", str(values_file)])

        set_values = flatten_values(ctx.context.global_values, "global")
        set_values.extend(f"{k}={v}" for k, v in chart.chart.set_values.items())
        if chart.tag_value_name and chart.tag:
            set_values.append(f"{chart.tag_value_name}={chart.tag}")
        set_values.extend(f"{k}={v}" for k, v in ctx.helm_set_values.items())
        for pair in set_values:
            cmd.extend(["--set", pair])

        return cmd

    def chart_dir(self, ctx: ExecutionContext, chart: ResolvedChart, work_dir: Path) -> Path:
        """Local chart directory, fetching the chart archive when needed."""
        if chart.chart.path:
            path = Path(chart.chart.path).expanduser()
            if not path.is_absolute() and chart.source:
                path = Path(chart.source).parent / path
            return path
        return self.fetch(ctx.helm_registry, chart.name, chart.version, work_dir)

    def fetch(self, registry: str, name: str, version: str, dest: Path) -> Path:
        """Download and extract ``{registry}/{name}-{version}.tgz`` under ``dest``.

        Raises:
            ExecutionError: If the archive cannot be downloaded or extracted
        """
        if not registry:
            raise ExecutionError(
                f"No Helm registry configured to fetch chart {name}",
                details="Set `helm.registry` or a context's `helm-registry-url` in your Ankh config.",
            )
        url = f"{registry.rstrip('/')}/{name}-{version}.tgz"
        logger.debug(f"Fetching chart {name}@{version} from {url}")
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExecutionError(f"Unable to fetch chart {name}@{version} from {url}: {e}") from e

        dest.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(fileobj=io.BytesIO(response.content), mode="r:gz") as archive:
                archive.extractall(dest, filter="data")
        except tarfile.TarError as e:
            raise ExecutionError(f"Unable to extract chart {name}@{version}: {e}") from e
        return dest / name

    def _values_files(
        self,
        ctx: ExecutionContext,
        chart: ResolvedChart,
        chart_dir: Path,
        work_dir: Path,
    ) -> list[Path]:
        environment_class = ctx.context.environment_class
        resource_profile = ctx.context.resource_profile
        layers: list[tuple[str, Any]] = []

        for filename, key in (
            (CHART_VALUES_FILE, environment_class),
            (CHART_RESOURCE_PROFILES_FILE, resource_profile),
        ):
            embedded = chart_dir / filename
            if embedded.is_file():
                data = yaml.safe_load(embedded.read_text()) or {}
                layers.append((f"chart-{filename}", data.get(key)))

        spec = chart.chart
        layers.append(("default-values.yaml", spec.default_values))
        layers.append((f"values-{environment_class}.yaml", spec.values.get(environment_class)))
        layers.append(
            (
                f"resource-profile-{resource_profile}.yaml",
                spec.resource_profiles.get(resource_profile),
            )
        )

        files = []
        for name, values in layers:
            if not values:
                continue
            path = work_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(yaml.safe_dump(values, default_flow_style=False))
            files.append(path)
        return files

    # =========================================================================
    # Lint
    # =========================================================================

    def lint(self, manifest: str, namespace: str) -> list[str]:
        """Check rendered objects for common mistakes.

        Every document must parse, and define ``kind``, ``apiVersion`` and
        ``metadata.name``. An explicit ``metadata.namespace`` must match the
        namespace the objects are being rendered for.
        """
        errors = []
        for document in _DOCUMENT_SEPARATOR.split(manifest):
            match = _SOURCE_COMMENT.search(document)
            label = match.group("source") if match else "(unknown source)"
            try:
                obj = yaml.safe_load(document)
            except yaml.YAMLError as e:
                errors.append(f"{label}: invalid YAML: {e}")
                continue
            if obj is None:
                continue
            if not isinstance(obj, dict):
                errors.append(f"{label}: expected a mapping, found {type(obj).__name__}")
                continue

            if not obj.get("kind"):
                errors.append(f"{label}: missing `kind`")
            if not obj.get("apiVersion"):
                errors.append(f"{label}: missing `apiVersion`")
            metadata = obj.get("metadata") or {}
            if not metadata.get("name"):
                errors.append(f"{label}: missing `metadata.name`")
            object_namespace = metadata.get("namespace")
            if object_namespace and object_namespace != namespace:
                errors.append(
                    f"{label}: object has namespace `{object_namespace}` "
                    f"but is being rendered for namespace `{namespace}`"
                )
        return errors

    # =========================================================================
    # Registry Queries
    # =========================================================================

    def _index(self, registry: str) -> dict[str, list[dict[str, Any]]]:
        if not registry:
            raise ResolutionError(
                "No Helm registry configured",
                details="Set `helm.registry` or a context's `helm-registry-url` in your Ankh config.",
            )
        url = f"{registry.rstrip('/')}/index.yaml"
        logger.debug(f"Fetching chart index from {url}")
        try:
            response = self._client.get(url)
            response.raise_for_status()
            index = yaml.safe_load(response.text) or {}
        except (httpx.HTTPError, yaml.YAMLError) as e:
            raise ResolutionError(f"Unable to read chart index from {url}: {e}") from e
        return index.get("entries") or {}

    @staticmethod
    def _ordered_versions(entries: list[dict[str, Any]]) -> list[str]:
        ordered = sorted(
            entries,
            key=lambda e: (str(e.get("created", "")), version_sort_key(str(e.get("version", "")))),
            reverse=True,
        )
        return [str(e.get("version", "")) for e in ordered]

    def list_versions(self, registry: str, chart: str) -> list[str]:
        """Versions of ``chart``, newest first.

        Raises:
            ResolutionError: If the registry is unreachable or lacks the chart
        """
        entries = self._index(registry).get(chart)
        if not entries:
            raise ResolutionError(f"Chart `{chart}` not found in registry {registry}")
        return self._ordered_versions(entries)

    def list_charts(self, registry: str, num: int = 5) -> dict[str, list[str]]:
        """All charts in the registry with up to ``num`` versions each (0 for all)."""
        charts = {}
        for name, entries in sorted(self._index(registry).items()):
            versions = self._ordered_versions(entries or [])
            charts[name] = versions[:num] if num > 0 else versions
        return charts

    def inspect(self, registry: str, chart_spec: str, data_dir: str) -> str:
        """Return the raw templates of a chart, one ``# Source:`` document each."""
        name, version = parse_chart_spec(chart_spec)
        if not version:
            version = self.list_versions(registry, name)[0]
            logger.info(f"Inspecting latest version {name}@{version}")

        chart_dir = self.fetch(registry, name, version, Path(data_dir) / name)
        parts = [f"# Chart: {name}\n"]
        templates = chart_dir / "templates"
        if templates.is_dir():
            for path in sorted(p for p in templates.rglob("*") if p.is_file()):
                relative = path.relative_to(chart_dir).as_posix()
                parts.append(f"---\n# Source: {name}/{relative}\n{path.read_text()}\n")
        return "".join(parts)

    # =========================================================================
    # Chart Maintenance
    # =========================================================================

    @staticmethod
    def read_chart_metadata(chart_dir: Path) -> dict[str, Any]:
        chart_file = chart_dir / "Chart.yaml"
        try:
            metadata = yaml.safe_load(chart_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ExecutionError(f"Unable to read {chart_file}: {e}") from e
        if not metadata.get("name") or not metadata.get("version"):
            raise ExecutionError(f"{chart_file} must define `name` and `version`")
        return metadata

    def publish(self, registry: str, chart_dir: Path, data_dir: str) -> str:
        """Package the chart in ``chart_dir`` and upload it to the registry.

        Raises:
            ExecutionError: If the version already exists or packaging or
                            upload fails
        """
        metadata = self.read_chart_metadata(chart_dir)
        name, version = str(metadata["name"]), str(metadata["version"])

        existing = self._index(registry).get(name) or []
        if version in self._ordered_versions(existing):
            raise ExecutionError(
                f"Chart {name}@{version} already exists in registry {registry}",
                details="Bump the chart version with `ankh chart bump` and try again.",
            )

        package_dir = Path(data_dir)
        package_dir.mkdir(parents=True, exist_ok=True)
        result = self._runner.run(
            ["helm", "package", str(chart_dir), "--destination", str(package_dir)]
        )
        if not result.success:
            raise ExecutionError(f"Error packaging chart {name}", details=result.output)

        archive = package_dir / f"{name}-{version}.tgz"
        url = f"{registry.rstrip('/')}/api/charts"
        logger.info(f"Publishing {archive.name} to {url}")
        try:
            response = self._client.post(
                url,
                content=archive.read_bytes(),
                headers={"Content-Type": "application/gzip"},
            )
            response.raise_for_status()
        except (OSError, httpx.HTTPError) as e:
            raise ExecutionError(f"Unable to publish {archive.name} to {url}: {e}") from e
        return f"{name}@{version}"

    def bump(self, chart_dir: Path, part: str = "patch") -> tuple[str, str]:
        """Bump the version in ``chart_dir/Chart.yaml``; returns (old, new)."""
        metadata = self.read_chart_metadata(chart_dir)
        old = str(metadata["version"])
        try:
            new = bump_semver(old, part)
        except ValueError as e:
            raise ExecutionError(str(e)) from e

        metadata["version"] = new
        (chart_dir / "Chart.yaml").write_text(
            yaml.safe_dump(metadata, default_flow_style=False, sort_keys=False)
        )
        return old, new
