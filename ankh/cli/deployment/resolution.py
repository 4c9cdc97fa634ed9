"""Chart version, namespace and image tag resolution.

Resolution turns parsed ``Chart`` entries into ``ResolvedChart`` values
before anything is rendered. Registry lookups and prompts are injected so
the transformation can run without a network or a terminal.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import httpx
from loguru import logger

from ankh.cli.deployment.constants import UNSET_TAG_VALUE, Mode
from ankh.cli.deployment.descriptor import AnkhFile, Chart
from ankh.errors import AnkhError, DescriptorError, ResolutionError
from ankh.utils.console_like import Prompter


@dataclass(frozen=True)
class ResolvedChart:
    """A chart ready to render: namespace, version and tag are settled."""

    chart: Chart
    namespace: str
    version: str = ""
    tag: str = ""
    tag_value_name: str = ""
    source: str = ""

    def __post_init__(self) -> None:
        if self.namespace is None:
            raise ValueError(f"Resolved chart {self.chart.name} requires a namespace")

    @property
    def name(self) -> str:
        return self.chart.name


@dataclass(frozen=True)
class ResolvedAnkhFile:
    """An Ankh file whose charts are resolved, with its resolved dependencies."""

    path: str
    charts: tuple[ResolvedChart, ...] = ()
    dependencies: tuple[ResolvedAnkhFile, ...] = ()
    namespace: str | None = None


class ChartResolver:
    """Resolves the charts of an Ankh file for one execution."""

    def __init__(
        self,
        *,
        mode: Mode,
        prompter: Prompter,
        list_versions: Callable[[str], Sequence[str]],
        list_tags: Callable[[str], Sequence[str]],
        helm_set_values: Mapping[str, str] | None = None,
        default_tag_value_name: str = "",
        namespace_override: str | None = None,
        ignore_config_errors: bool = False,
    ):
        self.mode = mode
        self.prompter = prompter
        self.list_versions = list_versions
        self.list_tags = list_tags
        self.helm_set_values = dict(helm_set_values or {})
        self.default_tag_value_name = default_tag_value_name
        self.namespace_override = namespace_override
        self.ignore_config_errors = ignore_config_errors

    def resolve_all(self, ankh_file: AnkhFile) -> tuple[ResolvedChart, ...]:
        return tuple(self.resolve(chart, ankh_file) for chart in ankh_file.charts)

    def resolve(self, chart: Chart, ankh_file: AnkhFile) -> ResolvedChart:
        """Resolve a single chart declared in ``ankh_file``.

        Raises:
            DescriptorError: If no namespace applies to the chart
            ResolutionError: If a version or tag cannot be determined and
                             config errors are not ignored
        """
        namespace = self._resolve_namespace(chart, ankh_file)
        version = chart.version or self._select_version(chart)

        tag_value_name = chart.tag_value_name or self.default_tag_value_name
        tag = chart.tag
        if tag_value_name:
            tag = self._resolve_tag(chart, tag_value_name)

        return ResolvedChart(
            chart=chart,
            namespace=namespace,
            version=version,
            tag=tag,
            tag_value_name=tag_value_name,
            source=ankh_file.path,
        )

    def _resolve_namespace(self, chart: Chart, ankh_file: AnkhFile) -> str:
        if self.namespace_override is not None:
            return self.namespace_override
        if chart.namespace is not None:
            return chart.namespace
        if ankh_file.namespace is not None:
            logger.info(
                f'Using namespace "{ankh_file.namespace}" from Ankh file '
                f'for chart "{chart.name}" which has no explicit namespace set'
            )
            return ankh_file.namespace
        raise DescriptorError(
            f'Namespace is required for chart "{chart.name}".',
            details="Provide a namespace either on the command line using `-n/--namespace`, "
            "using `namespace:` in an Ankh file where this chart is defined (eg: ankh.yaml), "
            "or on the chart entry in the `charts` array in an Ankh file.",
        )

    def _select_version(self, chart: Chart) -> str:
        try:
            versions = list(self.list_versions(chart.name))
        except (AnkhError, httpx.HTTPError) as e:
            self._complain(f'Unable to list versions for chart "{chart.name}": {e}')
            return ""
        if not versions:
            self._complain(f'No versions found for chart "{chart.name}"')
            return ""

        logger.info(f'Found chart "{chart.name}" without a version')
        version = self.prompter.select_one(versions, f"Select a version for chart '{chart.name}'")
        logger.info(f"Using {chart.name}@{version} based on selection")
        return version

    def _resolve_tag(self, chart: Chart, tag_value_name: str) -> str:
        if tag_value_name in self.helm_set_values:
            tag = self.helm_set_values[tag_value_name]
            logger.info(f'Using tag value "{tag_value_name}={tag}" based on --set argument')
            return tag

        if chart.tag:
            return chart.tag

        if self.mode.is_read_only:
            logger.debug(
                f"Setting configured tagValueName {tag_value_name}={UNSET_TAG_VALUE} "
                "for a safe operation"
            )
            return UNSET_TAG_VALUE

        # The primary image is commonly named after the chart
        image = self.prompter.prompt_text(
            chart.name,
            f"No tag specified for chart '{chart.name}'. "
            "Provide the name of an image to select tags for => ",
        )
        try:
            tags = list(self.list_tags(image))
        except (AnkhError, httpx.HTTPError) as e:
            self._complain(f'Unable to list tags for image "{image}": {e}')
            return ""

        if not tags:
            self._complain(
                "Could not determine a tag value, and we check for this because "
                f"`tagValueName` is configured to be `{tag_value_name}`. "
                f"You may want to try passing a tag value explicitly using "
                f"`ankh --set {tag_value_name}=... `, or simply ignore this error entirely "
                "using `ankh --ignore-config-errors ...` (not recommended)"
            )
            return ""

        tag = self.prompter.select_one(tags, f"Select a value for '{tag_value_name}'")
        logger.info(f"Using tag {tag_value_name}={tag} based on selection")
        return tag

    def _complain(self, message: str) -> None:
        if self.ignore_config_errors:
            logger.warning(message)
            return
        raise ResolutionError(message)
