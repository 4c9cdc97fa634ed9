"""Pydantic models for Ankh configuration documents."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _none_as_default(cls, value: Any, info: Any) -> Any:
        # Empty YAML keys (``contexts:``) parse as None
        if value is None:
            field = cls.model_fields[info.field_name]
            if field.default_factory is not None:
                return field.default_factory()
            return field.default
        return value


class Context(_ConfigModel):
    """A cluster target plus the release metadata used to template charts."""

    kube_context: str = Field(default="", alias="kube-context")
    kube_server: str = Field(default="", alias="kube-server")
    release: str = ""
    environment_class: str = Field(default="", alias="environment-class")
    resource_profile: str = Field(default="", alias="resource-profile")
    helm_registry_url: str = Field(default="", alias="helm-registry-url")
    global_values: dict[str, Any] = Field(default_factory=dict, alias="global")
    source: str = ""

    @property
    def target(self) -> str:
        """Display target: the kube-context wins over the kube-server."""
        return self.kube_context or self.kube_server


class Environment(_ConfigModel):
    """An ordered list of contexts an invocation fans out over."""

    contexts: list[str] = Field(default_factory=list)
    source: str = ""


class HelmConfig(_ConfigModel):
    tag_value_name: str = Field(default="", alias="tagValueName")
    registry: str = ""


class DockerConfig(_ConfigModel):
    registry: str = ""


class AnkhConfig(_ConfigModel):
    """A single configuration source, or the merge of several."""

    current_context: str = Field(default="", alias="current-context")
    contexts: dict[str, Context] = Field(default_factory=dict)
    environments: dict[str, Environment] = Field(default_factory=dict)
    include: list[str] = Field(default_factory=list)
    helm: HelmConfig = Field(default_factory=HelmConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)

    def helm_registry(self) -> str:
        """Global Helm registry, else the first context that defines one."""
        if self.helm.registry:
            return self.helm.registry
        for context in self.contexts.values():
            if context.helm_registry_url:
                return context.helm_registry_url
        return ""

    def to_yaml_dict(self, *, include_source: bool = True) -> dict[str, Any]:
        exclude: dict[str, Any] | None = None
        if not include_source:
            exclude = {
                "contexts": {"__all__": {"source"}},
                "environments": {"__all__": {"source"}},
            }
        return self.model_dump(by_alias=True, exclude_defaults=True, exclude=exclude)
