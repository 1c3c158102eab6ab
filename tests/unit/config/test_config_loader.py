"""Unit tests for configuration loading and precedence."""

from pathlib import Path

import pytest

from clipforge.config import (
    ClipforgeConfig,
    ConfigFileError,
    EnvReader,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from clipforge.config.builder import ConfigBuilder, ConfigSource
from clipforge.config.models import ExportConfig, ServerConfig


def _write_config(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestEnvReader:
    """Tests for EnvReader conversions."""

    def test_int_and_float(self) -> None:
        reader = EnvReader(env={"A": "9000", "B": "2.5", "C": "nope"})
        assert reader.get_int("A") == 9000
        assert reader.get_float("B") == 2.5
        assert reader.get_int("C", 7) == 7
        assert reader.get_float("C", 1.0) == 1.0
        assert reader.get_int("MISSING", 3) == 3

    @pytest.mark.parametrize(
        "value,expected", [("true", True), ("ON", True), ("1", True), ("no", False)]
    )
    def test_bool(self, value: str, expected: bool) -> None:
        assert EnvReader(env={"FLAG": value}).get_bool("FLAG") is expected

    def test_path_must_exist(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"P": str(tmp_path / "missing")})
        assert reader.get_path("P") is None
        assert reader.get_path("P", must_exist=False) == tmp_path / "missing"


class TestLoadConfigFile:
    """Tests for load_config_file()."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "absent.toml") == {}

    def test_parses_toml(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "c.toml", "[server]\nport = 9001\n")
        assert load_config_file(path) == {"server": {"port": 9001}}

    def test_invalid_toml_lenient(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "bad.toml", "[server\nport = \n")
        assert load_config_file(path) == {}

    def test_invalid_toml_strict(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "bad.toml", "[server\nport = \n")
        with pytest.raises(ConfigFileError):
            load_config_file(path, strict=True)

    def test_cache_is_clearable(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "c.toml", "[server]\nport = 9001\n")
        load_config_file(path)
        clear_config_cache()
        assert load_config_file(path)["server"]["port"] == 9001


class TestDefaultConfigPath:
    """Tests for get_default_config_path()."""

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLIPFORGE_CONFIG_PATH", str(tmp_path / "x.toml"))
        assert get_default_config_path() == tmp_path / "x.toml"


class TestGetConfig:
    """Tests for get_config() precedence."""

    def test_defaults(self) -> None:
        config = get_config(env_reader=EnvReader(env={}))

        assert isinstance(config, ClipforgeConfig)
        assert config.export.default_resolution == "source"
        assert config.export.crf == 23
        assert config.thumbnails.width == 320
        assert config.server.port == 8765

    def test_file_values(self, tmp_path: Path) -> None:
        path = _write_config(
            tmp_path / "c.toml",
            "[export]\ndefault_resolution = '720p'\ncrf = 18\n"
            "[thumbnails]\nwidth = 640\nheight = 360\n"
            "[logging]\nlevel = 'debug'\n",
        )

        config = get_config(path, env_reader=EnvReader(env={}))

        assert config.export.default_resolution == "720p"
        assert config.export.crf == 18
        assert (config.thumbnails.width, config.thumbnails.height) == (640, 360)
        assert config.logging.level == "debug"

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "c.toml", "[server]\nport = 9001\n")
        reader = EnvReader(
            env={"CLIPFORGE_SERVER_PORT": "9100", "CLIPFORGE_CRF": "30"}
        )

        config = get_config(path, env_reader=reader)

        assert config.server.port == 9100
        assert config.export.crf == 30

    def test_cli_overrides_env(self, tmp_path: Path) -> None:
        env_tool = tmp_path / "env-ffmpeg"
        env_tool.touch()
        reader = EnvReader(env={"CLIPFORGE_FFMPEG_PATH": str(env_tool)})

        config = get_config(
            ffmpeg_path=tmp_path / "cli-ffmpeg", env_reader=reader
        )

        assert config.tools.ffmpeg == tmp_path / "cli-ffmpeg"

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "c.toml", "[export]\ncrf = 80\n")
        with pytest.raises(ValueError, match="crf"):
            get_config(path, env_reader=EnvReader(env={}))

    def test_strict_parse_error(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / "c.toml", "not = [valid\n")
        with pytest.raises(ConfigFileError):
            get_config(path, env_reader=EnvReader(env={}), strict=True)


class TestConfigBuilder:
    """Tests for ConfigBuilder layering."""

    def test_none_does_not_override(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(server_port=9000, preset="slow"))
        builder.apply(ConfigSource(server_port=None, preset="fast"))

        config = builder.build()

        assert config.server.port == 9000
        assert config.export.preset == "fast"


class TestModelValidation:
    """Tests for config dataclass validation."""

    def test_export_rejects_unknown_resolution(self) -> None:
        with pytest.raises(ValueError, match="default_resolution"):
            ExportConfig(default_resolution="8K")

    def test_export_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError, match="max_concurrent_jobs"):
            ExportConfig(max_concurrent_jobs=0)

    def test_server_port_range(self) -> None:
        with pytest.raises(ValueError, match="port"):
            ServerConfig(port=70000)

    def test_throttle_seconds(self) -> None:
        assert ExportConfig(progress_throttle_ms=250).throttle_seconds == 0.25

    def test_encode_settings(self) -> None:
        encode = ExportConfig(video_codec="libx265", crf=28).encode_settings()
        assert encode.video_codec == "libx265"
        assert encode.crf == 28
