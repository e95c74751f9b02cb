"""
Tests for configuration loading — genguard.yml parsing and validation.
"""

import textwrap
from pathlib import Path

import pytest

from genguard.core.config.loader import (
    ConfigError,
    config_root,
    find_config_file,
    load_config,
    parse_config,
)


@pytest.fixture
def valid_config_yml(tmp_path: Path) -> Path:
    """Create a valid genguard.yml in a temp directory."""
    content = textwrap.dedent("""\
        version: 1
        settings:
          corba: true
          always_regenerate: false
          transports: [corba, typelib]
          tool_path: tools/bin/orogen
          options:
            - --type-export-policy=all

        packages:
          - name: rtt
            prefix: install/rtt
            provides:
              - pkgconfig/orocos-rtt-gnulinux
          - name: typelib
            install_marker: install/typelib/.stamp

        nodes:
          - name: base
            srcdir: src/base
          - name: camera
            srcdir: src/camera
            builddir: build/camera
            extended_states: false
            parallel_build_level: 4
            options: [--no-transports]
            dependencies: [base, pkgconfig/orocos-rtt-gnulinux]
    """)
    path = tmp_path / "genguard.yml"
    path.write_text(content)
    return path


class TestFindConfigFile:
    def test_finds_in_current_dir(self, valid_config_yml: Path):
        assert find_config_file(valid_config_yml.parent) == valid_config_yml.resolve()

    def test_finds_in_parent(self, valid_config_yml: Path):
        child = valid_config_yml.parent / "src" / "deep"
        child.mkdir(parents=True)
        assert find_config_file(child) == valid_config_yml.resolve()

    def test_returns_none_when_missing(self, tmp_path: Path):
        empty = tmp_path / "empty"
        empty.mkdir()
        found = find_config_file(empty)
        assert found is None or found.parent not in (empty, tmp_path)


class TestLoadConfig:
    def test_loads_settings(self, valid_config_yml: Path):
        config = load_config(valid_config_yml)
        assert config.settings.corba is True
        assert config.settings.always_regenerate is False
        assert config.settings.transports == ("corba", "typelib")
        assert config.settings.options == ("--type-export-policy=all",)

    def test_defaults(self, tmp_path: Path):
        path = tmp_path / "genguard.yml"
        path.write_text("nodes: []\n")
        settings = load_config(path).settings
        assert settings.always_regenerate is True
        assert settings.transports == ("corba", "typelib", "mqueue")
        assert settings.type_export_policy == "used"
        assert settings.version_ordering == "semantic"

    def test_paths_resolved_against_config_dir(self, valid_config_yml: Path):
        config = load_config(valid_config_yml)
        root = valid_config_yml.parent.resolve()
        camera = config.get_node("camera")
        assert camera.source_dir == root / "src" / "camera"
        assert camera.build_dir == root / "build" / "camera"
        assert config.settings.tool_path == str(root / "tools" / "bin" / "orogen")
        assert config.get_package("rtt").install_marker_path == root / "install" / "rtt" / ".install-stamp"
        assert config.get_package("typelib").install_marker_path == root / "install" / "typelib" / ".stamp"

    def test_node_defaults(self, valid_config_yml: Path):
        base = load_config(valid_config_yml).get_node("base")
        assert base.build_dir == base.source_dir / "build"
        assert base.install_marker_path == base.build_dir / ".install-stamp"
        assert base.dependencies == []

    def test_node_overrides(self, valid_config_yml: Path):
        camera = load_config(valid_config_yml).get_node("camera")
        assert camera.extended_states is False
        assert camera.parallel_build_level == 4
        assert camera.options == ["--no-transports"]

    def test_virtual_dependency(self, valid_config_yml: Path):
        config = load_config(valid_config_yml)
        assert config.find_provider("pkgconfig/orocos-rtt-gnulinux").name == "rtt"
        assert config.find_provider("nothing") is None

    def test_config_root(self, valid_config_yml: Path):
        assert config_root(valid_config_yml) == valid_config_yml.parent.resolve()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "genguard.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "genguard.yml"
        path.write_text("nodes: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "genguard.yml"
        path.write_text("")
        config = load_config(path)
        assert config.nodes == []


class TestValidation:
    def _parse(self, text: str, tmp_path: Path):
        import yaml

        return parse_config(yaml.safe_load(textwrap.dedent(text)), tmp_path)

    def test_not_a_mapping(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            self._parse("- a\n- b\n", tmp_path)

    def test_nodes_must_be_list(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="'nodes' must be a list"):
            self._parse("nodes: {a: 1}\n", tmp_path)

    def test_node_requires_srcdir(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Invalid generation configuration"):
            self._parse("nodes:\n  - name: camera\n", tmp_path)

    def test_bad_ordering(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            self._parse("settings:\n  version_ordering: random\n", tmp_path)

    def test_duplicate_names(self, tmp_path: Path):
        text = """\
            packages:
              - name: camera
                prefix: /opt/camera
            nodes:
              - name: camera
                srcdir: src/camera
        """
        with pytest.raises(ConfigError, match="Duplicate package name 'camera'"):
            self._parse(text, tmp_path)

    def test_unknown_dependency(self, tmp_path: Path):
        text = """\
            nodes:
              - name: camera
                srcdir: src/camera
                dependencies: [ghost]
        """
        with pytest.raises(ConfigError, match="unknown package 'ghost'"):
            self._parse(text, tmp_path)

    def test_package_needs_location(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="needs a prefix or an install_marker"):
            self._parse("packages:\n  - name: rtt\n", tmp_path)

    def test_settings_frozen(self, tmp_path: Path):
        config = self._parse("settings:\n  corba: true\n", tmp_path)
        with pytest.raises(ValueError):
            config.settings.corba = False
