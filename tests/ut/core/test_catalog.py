"""依赖清单加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from depkit.core.dep.catalog import Catalog, load_catalog
from depkit.core.exceptions import ConfigError, ValidationError

SHA = "b" * 64

CATALOG_TOML = f"""
[metadata.default-versions]
jdk = "11.*"

[[metadata.dependencies]]
id      = "jdk"
name    = "JDK"
version = "11.0.2"
uri     = "https://example.com/jdk-11.0.2.tar.gz"
sha256  = "{SHA}"
stacks  = ["bionic"]

  [[metadata.dependencies.licenses]]
  type = "GPL-2.0 WITH Classpath-exception-2.0"
  uri  = "https://openjdk.java.net/legal/gplv2+ce.html"

[[metadata.dependencies]]
id      = "jdk"
name    = "JDK"
version = "17.0.1"
uri     = "https://example.com/jdk-17.0.1.tar.gz"
stacks  = ["bionic", "jammy"]
"""


class TestLoadCatalog:
    def test_load_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "buildpack.toml"
        path.write_text(CATALOG_TOML)

        catalog = load_catalog(path)
        assert len(catalog.dependencies) == 2
        first = catalog.dependencies[0]
        assert first.sha256 == SHA
        assert first.licenses[0].type.startswith("GPL-2.0")
        assert catalog.dependencies[1].sha256 == ""
        assert catalog.default_version("jdk") == "11.*"
        assert catalog.default_version("jre") == ""

    def test_load_yaml_top_level(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.yml"
        path.write_text(yaml.dump({
            "dependencies": [{
                "id": "node", "name": "Node", "version": "18.12.0",
                "uri": "https://example.com/node.tar.xz", "stacks": ["jammy"],
            }],
        }))
        catalog = load_catalog(path)
        assert catalog.dependencies[0].id == "node"
        assert catalog.default_versions == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="不存在"):
            load_catalog(tmp_path / "nope.toml")

    def test_unsupported_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text("{}")
        with pytest.raises(ConfigError, match="不支持"):
            load_catalog(path)

    def test_broken_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.toml"
        path.write_text("[[metadata.dependencies]\nid = ")
        with pytest.raises(ConfigError):
            load_catalog(path)

    def test_invalid_entries_collected(self) -> None:
        with pytest.raises(ValidationError) as exc:
            Catalog.from_dict({"dependencies": [
                {"id": "ok"},
                {"id": "bad", "sha256": "xyz"},
                {"id": "worse", "stacks": "bionic"},
            ]})
        assert len(exc.value.details) == 2
        assert exc.value.details[0].startswith("dependencies[1]")

    def test_default_versions_must_be_strings(self) -> None:
        with pytest.raises(ValidationError, match="default-versions"):
            Catalog.from_dict({"default-versions": {"jdk": 11}})
