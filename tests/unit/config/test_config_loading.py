"""Tests for reading, parsing and writing configuration sources."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
import yaml

from ankh.config import AnkhConfig, Context, dump_config, load_config, parse_config, save_config
from ankh.config.config_loader import is_remote, read_config_source
from ankh.errors import ConfigError


class TestParseConfig:
    def test_parses_aliased_fields(self) -> None:
        config = parse_config(
            """
current-context: dev
helm:
  tagValueName: image.tag
contexts:
  dev:
    kube-context: minikube
    environment-class: dev
    resource-profile: constrained
    helm-registry-url: https://charts.example.com
    global:
      domain: example.com
""",
            source="local",
        )

        context = config.contexts["dev"]
        assert config.current_context == "dev"
        assert config.helm.tag_value_name == "image.tag"
        assert context.kube_context == "minikube"
        assert context.environment_class == "dev"
        assert context.helm_registry_url == "https://charts.example.com"
        assert context.global_values == {"domain": "example.com"}
        assert context.source == "local"

    def test_empty_document_is_an_empty_config(self) -> None:
        config = parse_config("", source="empty")

        assert config.contexts == {}
        assert config.include == []

    def test_null_sections_use_defaults(self) -> None:
        config = parse_config("contexts:\nenvironments:\ninclude:\n", source="x")

        assert config.contexts == {}
        assert config.environments == {}
        assert config.include == []

    def test_malformed_yaml_raises(self) -> None:
        with pytest.raises(ConfigError, match="Error parsing config source"):
            parse_config("contexts: [unclosed", source="bad")

    def test_non_mapping_document_raises(self) -> None:
        with pytest.raises(ConfigError, match="expected a mapping"):
            parse_config("- a\n- b\n", source="list")

    def test_wrong_structure_raises(self) -> None:
        with pytest.raises(ConfigError, match="Invalid config source"):
            parse_config("contexts: [a, b]\n", source="bad")

    def test_context_target_prefers_kube_context(self) -> None:
        both = Context(kube_context="handle", kube_server="https://server")
        server_only = Context(kube_server="https://server")

        assert both.target == "handle"
        assert server_only.target == "https://server"


class TestHelmRegistry:
    def test_global_registry_wins(self) -> None:
        config = AnkhConfig.model_validate(
            {
                "helm": {"registry": "https://global"},
                "contexts": {"a": {"helm-registry-url": "https://context"}},
            }
        )
        assert config.helm_registry() == "https://global"

    def test_falls_back_to_first_context(self) -> None:
        config = AnkhConfig.model_validate(
            {"contexts": {"a": {}, "b": {"helm-registry-url": "https://context-b"}}}
        )
        assert config.helm_registry() == "https://context-b"


class TestReadConfigSource:
    def test_is_remote(self) -> None:
        assert is_remote("https://example.com/config")
        assert is_remote("http://example.com/config")
        assert not is_remote("~/.ankh/config")

    def test_reads_local_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config"
        path.write_text("current-context: dev\n")

        config = load_config(str(path))

        assert config.current_context == "dev"

    def test_missing_local_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Unable to read config source"):
            read_config_source(str(tmp_path / "missing"))

    @patch("ankh.config.config_loader.httpx.get")
    def test_fetches_remote_source(self, mock_get: MagicMock) -> None:
        response = MagicMock()
        response.text = "current-context: remote\n"
        mock_get.return_value = response

        config = load_config("https://example.com/ankh.yaml")

        assert config.current_context == "remote"
        mock_get.assert_called_once()
        assert mock_get.call_args.kwargs["timeout"] == 10.0

    @patch("ankh.config.config_loader.httpx.get")
    def test_remote_failure_raises(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(ConfigError, match="Unable to fetch config source"):
            read_config_source("https://example.com/ankh.yaml")


class TestDumpConfig:
    def test_round_trips_through_yaml(self) -> None:
        config = parse_config(
            "contexts:\n  dev:\n    kube-context: minikube\n    release: '123'\n",
            source="local",
        )

        dumped = dump_config(config)
        reloaded = yaml.safe_load(dumped)

        assert reloaded["contexts"]["dev"]["kube-context"] == "minikube"
        assert reloaded["contexts"]["dev"]["release"] == "123"
        assert reloaded["contexts"]["dev"]["source"] == "local"

    def test_save_config_omits_source(self, tmp_path: Path) -> None:
        config = parse_config("contexts:\n  dev:\n    kube-context: minikube\n", source="x")
        path = tmp_path / "nested" / "config"

        save_config(config, path)

        saved = yaml.safe_load(path.read_text())
        assert saved == {"contexts": {"dev": {"kube-context": "minikube"}}}
