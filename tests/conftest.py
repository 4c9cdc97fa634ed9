from collections.abc import Iterator

import pytest
from loguru import logger

from ankh.cli.context import ExecutionContext
from ankh.cli.deployment.constants import Mode
from ankh.config import AnkhConfig, parse_config

SAMPLE_CONFIG = """
current-context: minikube
helm:
  tagValueName: image.tag
  registry: https://charts.example.com
docker:
  registry: registry.example.com
contexts:
  minikube:
    kube-context: minikube
    release: minikube
    environment-class: dev
    resource-profile: constrained
  prod-east:
    kube-server: https://prod-east.example.com
    release: production
    environment-class: production
    resource-profile: natural
  prod-west:
    kube-context: prod-west
    release: production
    environment-class: production
    resource-profile: natural
environments:
  production:
    contexts:
      - prod-east
      - prod-west
"""


@pytest.fixture
def captured_logs() -> Iterator[list[tuple[str, str]]]:
    """Collect (level, message) pairs logged through loguru."""
    records: list[tuple[str, str]] = []
    handler_id = logger.add(
        lambda message: records.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
        format="{message}",
    )
    yield records
    logger.remove(handler_id)


@pytest.fixture
def config_path(tmp_path) -> str:
    """SAMPLE_CONFIG written to a local config source."""
    path = tmp_path / "config"
    path.write_text(SAMPLE_CONFIG)
    return str(path)


@pytest.fixture
def ankh_config() -> AnkhConfig:
    return parse_config(SAMPLE_CONFIG, source="/home/user/.ankh/config")


@pytest.fixture
def make_execution_context(ankh_config: AnkhConfig, tmp_path):
    """Factory for execution contexts targeting the minikube context."""

    def _make(mode: Mode = Mode.TEMPLATE, **overrides: object) -> ExecutionContext:
        values: dict[str, object] = {
            "mode": mode,
            "config": ankh_config,
            "context_name": "minikube",
            "context": ankh_config.contexts["minikube"],
            "kube_config_path": "/home/user/.kube/config",
            "data_dir": str(tmp_path / "data"),
        }
        values.update(overrides)
        return ExecutionContext(**values)  # type: ignore[arg-type]

    return _make
