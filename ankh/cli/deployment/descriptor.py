"""Ankh file (deployment descriptor) models and parsing.

An Ankh file declares charts to template and apply, an optional default
namespace, and dependencies on other Ankh files that must be processed
first. Dependencies are only recorded here; the executor loads them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ankh.errors import DescriptorError


class Chart(BaseModel):
    """A chart entry as written in an Ankh file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str
    version: str = ""
    path: str | None = None
    namespace: str | None = None
    tag: str = ""
    tag_value_name: str = Field(default="", alias="tagValueName")
    set_values: dict[str, str] = Field(default_factory=dict, alias="set")
    default_values: dict[str, Any] = Field(default_factory=dict, alias="default-values")
    values: dict[str, dict[str, Any]] = Field(default_factory=dict)
    resource_profiles: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="resource-profiles"
    )

    @field_validator("version", "tag", "tag_value_name", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        return "" if value is None else str(value)

    @field_validator("set_values", mode="before")
    @classmethod
    def _stringify_set_values(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @field_validator("default_values", "values", "resource_profiles", mode="before")
    @classmethod
    def _empty_mapping(cls, value: Any) -> Any:
        return {} if value is None else value


class AnkhFile(BaseModel):
    """A parsed Ankh file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    namespace: str | None = None
    charts: list[Chart] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    path: str = ""

    @field_validator("charts", "dependencies", mode="before")
    @classmethod
    def _empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def dependency_paths(self) -> list[str]:
        """Dependency locations, relative ones resolved against this file's directory."""
        base = Path(self.path).parent if self.path else Path(".")
        return [
            dep if Path(dep).is_absolute() else str(base / dep) for dep in self.dependencies
        ]


def parse_ankh_file_content(content: str, source: str = "") -> AnkhFile:
    """Parse Ankh file text. Pure: no file or network access.

    Raises:
        DescriptorError: If the document is malformed
    """
    try:
        loaded: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DescriptorError(f"Error parsing Ankh file `{source}`: {e}") from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise DescriptorError(
            f"Invalid Ankh file `{source}`: expected a mapping at the top level"
        )

    try:
        return AnkhFile.model_validate({**loaded, "path": source})
    except ValidationError as e:
        raise DescriptorError(f"Invalid Ankh file `{source}`", details=str(e)) from e


def parse_ankh_file(path: str) -> AnkhFile:
    """Read and parse an Ankh file from disk.

    Raises:
        DescriptorError: If the file cannot be read or parsed
    """
    try:
        content = Path(path).read_text()
    except OSError as e:
        raise DescriptorError(f"Unable to read Ankh file `{path}`: {e}") from e

    ankh_file = parse_ankh_file_content(content, source=path)
    logger.debug(f"- OK: {path}")
    return ankh_file


def parse_chart_spec(spec: str) -> tuple[str, str]:
    """Split ``CHART[@VERSION]`` into name and (possibly empty) version."""
    name, _, version = spec.partition("@")
    return name.strip(), version.strip()


def select_chart(ankh_file: AnkhFile, spec: str) -> AnkhFile:
    """Narrow an Ankh file to the single chart named by ``spec``.

    A version in ``spec`` overrides the version in the file. Dependencies
    are dropped since only the requested chart is operated on.

    Raises:
        DescriptorError: If the chart is not declared in the file
    """
    name, version = parse_chart_spec(spec)
    for chart in ankh_file.charts:
        if chart.name == name:
            if version:
                chart = chart.model_copy(update={"version": version})
            return ankh_file.model_copy(update={"charts": [chart], "dependencies": []})

    raise DescriptorError(
        f"Chart `{name}` not found in Ankh file `{ankh_file.path}`",
        details="Declared charts: "
        + (", ".join(c.name for c in ankh_file.charts) or "(none)"),
    )


def load_root_ankh_file(path: str, chart_spec: str = "") -> AnkhFile:
    """Load the Ankh file an invocation starts from.

    With ``chart_spec`` and no file on disk, a file holding only that chart
    is synthesized so a chart can be operated on without an Ankh file.
    """
    if chart_spec and not Path(path).exists():
        name, version = parse_chart_spec(chart_spec)
        logger.debug(f"No Ankh file at {path}, operating only on chart {name}")
        return AnkhFile(charts=[Chart(name=name, version=version)], path=path)

    ankh_file = parse_ankh_file(path)
    if chart_spec:
        logger.debug(f"Skipping dependencies since we are operating only on chart {chart_spec}")
        return select_chart(ankh_file, chart_spec)
    return ankh_file
