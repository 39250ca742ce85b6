"""
Tests for configuration system.
"""

import json
import tempfile
from pathlib import Path

import pytest

from stream_manager.config import ConfigManager, ManagerConfig, StreamConfig, TranscodeConfig
from stream_manager.config.models import NANOSECONDS
from stream_manager.utils import ConfigurationError, ValidationError


class TestStreamConfig:
    """Test StreamConfig validation."""

    def test_defaults(self):
        """Test defaults of a minimal stream."""
        config = StreamConfig(name="movie", source="/media/movie.mkv")

        assert config.start_position == 0.0
        assert config.video_channel == 0
        assert config.audio_channel == 0
        assert config.subtitle_channel is None
        assert config.read_rate == 100

    @pytest.mark.parametrize("name", ["movie", "Movie_2", "cam-1", "A", "0"])
    def test_valid_names(self, name):
        """Test names made of letters, digits, dashes and underscores."""
        assert StreamConfig.parse({"name": name, "source": "x"}).name == name

    @pytest.mark.parametrize("name", ["", "bad name", "a/b", "über", "movie\n", "a.b"])
    def test_invalid_names(self, name):
        """Test rejected names."""
        with pytest.raises(ValidationError) as exc_info:
            StreamConfig.parse({"name": name, "source": "x"})

        assert "name" in str(exc_info.value)

    @pytest.mark.parametrize("source", ["", "   "])
    def test_empty_source(self, source):
        """Test that an empty source is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            StreamConfig.parse({"name": "movie", "source": source})

        assert "no source" in str(exc_info.value)

    def test_source_with_nul_character(self):
        """Test that a source with a NUL character is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            StreamConfig.parse({"name": "movie", "source": "/a\x00.mkv"})

        assert "source" in str(exc_info.value)

    @pytest.mark.parametrize("start_position", [float("inf"), float("nan"), "inf", "Infinity"])
    def test_non_finite_start_position(self, start_position):
        """Test that infinite and NaN start positions are rejected."""
        with pytest.raises(ValidationError):
            StreamConfig.parse({"name": "movie", "source": "x", "start_position": start_position})

    def test_stored_infinite_startpos(self):
        """Test that a stored entry with an infinite offset fails to load."""
        with pytest.raises(ValidationError):
            StreamConfig.load_entry('{"name": "movie", "source": "x", "startpos": Infinity}')

    def test_negative_start_position(self):
        """Test that a negative start position is rejected."""
        with pytest.raises(ValidationError):
            StreamConfig.parse({"name": "movie", "source": "x", "start_position": -1})

    def test_negative_channels_unset(self):
        """Test negative channel indices mean no selection."""
        config = StreamConfig(
            name="movie", source="x", video_channel=-1, audio_channel=-5, subtitle_channel=-1
        )

        assert config.video_channel is None
        assert config.audio_channel is None
        assert config.subtitle_channel is None

    def test_parse_returns_existing_config(self):
        """Test parse() passes a StreamConfig through."""
        config = StreamConfig(name="movie", source="x")

        assert StreamConfig.parse(config) is config

    def test_frozen(self):
        """Test configurations are immutable."""
        config = StreamConfig(name="movie", source="x")

        with pytest.raises(Exception):
            config.source = "y"


class TestStoreEntry:
    """Test the stored JSON entry format."""

    def test_dump_entry(self):
        """Test field names and encodings of a dumped entry."""
        config = StreamConfig(
            name="movie",
            source="/media/movie.mkv",
            start_position=90.5,
            audio_channel=2,
            subtitle_channel=None,
            read_rate=150,
        )

        entry = json.loads(config.dump_entry())

        assert entry == {
            "name": "movie",
            "source": "/media/movie.mkv",
            "startpos": 90_500_000_000,
            "video": 0,
            "audio": 2,
            "subtitle": -1,
            "readrate": 150,
        }

    def test_load_dumped_entry(self):
        """Test a dumped entry loads back to an equal configuration."""
        config = StreamConfig(
            name="movie", source="rtsp://cam/1", start_position=12.25, video_channel=None, subtitle_channel=1
        )

        assert StreamConfig.load_entry(config.dump_entry()) == config

    def test_load_entry_without_readrate(self):
        """Test entries written before read rates existed."""
        raw = json.dumps(
            {"name": "old", "source": "/a.mkv", "startpos": 5 * NANOSECONDS, "video": 0, "audio": -1, "subtitle": -1}
        )

        config = StreamConfig.load_entry(raw)

        assert config.start_position == 5.0
        assert config.audio_channel is None
        assert config.read_rate == 100

    def test_load_entry_missing_channels_default_to_first(self):
        """Test missing channel fields select index 0."""
        config = StreamConfig.load_entry(json.dumps({"name": "old", "source": "/a.mkv"}))

        assert config.video_channel == 0
        assert config.audio_channel == 0
        assert config.subtitle_channel == 0

    def test_load_entry_accepts_bytes(self):
        """Test loading a bytes entry."""
        config = StreamConfig.load_entry(b'{"name": "movie", "source": "/a.mkv"}')

        assert config.name == "movie"

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", "null", ""])
    def test_load_entry_invalid_json(self, raw):
        """Test corrupt entries raise ValidationError."""
        with pytest.raises(ValidationError):
            StreamConfig.load_entry(raw)

    def test_load_entry_invalid_fields(self):
        """Test entries with invalid fields raise ValidationError."""
        with pytest.raises(ValidationError):
            StreamConfig.load_entry(json.dumps({"name": "bad name", "source": "/a.mkv"}))

    def test_load_entry_invalid_startpos(self):
        """Test a non-numeric start position."""
        with pytest.raises(ValidationError):
            StreamConfig.load_entry(json.dumps({"name": "movie", "source": "/a.mkv", "startpos": "10s"}))


class TestManagerConfig:
    """Test ManagerConfig model."""

    def test_defaults(self):
        """Test default configuration."""
        config = ManagerConfig()

        assert config.target == "rtsp://localhost"
        assert config.transcode.ffmpeg_path == "ffmpeg"
        assert config.transcode.preset == "ultrafast"
        assert config.runner.capture_limit == 4096
        assert config.runner.error_tail == 128
        assert config.store.redis_url is None

    def test_empty_target(self):
        """Test empty target rejected."""
        with pytest.raises(ValueError):
            ManagerConfig(target="  ")

    def test_preset_normalized(self):
        """Test preset is lower-cased."""
        assert TranscodeConfig(preset="VeryFast").preset == "veryfast"

    def test_invalid_preset(self):
        """Test invalid preset."""
        with pytest.raises(ValueError):
            TranscodeConfig(preset="lightning")


class TestConfigManager:
    """Test ConfigManager."""

    def test_load_default(self, monkeypatch, tmp_path):
        """Test loading default configuration when no file exists."""
        monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_LOCATIONS", [tmp_path / "missing.yaml"])

        config = ConfigManager().load()

        assert isinstance(config, ManagerConfig)
        assert config.target == "rtsp://localhost"

    def test_save_and_load(self):
        """Test saving and loading configuration."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"

            manager = ConfigManager(config_path)
            config = ManagerConfig(target="rtsp://media:8554", store={"redis_url": "redis://db:6379/0"})
            manager.save(config_path, config)

            assert config_path.exists()

            loaded_config = ConfigManager(config_path).load()

            assert loaded_config.target == "rtsp://media:8554"
            assert loaded_config.store.redis_url == "redis://db:6379/0"

    def test_partial_file(self, tmp_path):
        """Test that missing sections fall back to defaults."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("target: rtsp://media:8554\nrunner:\n  stop_timeout: 2\n")

        config = ConfigManager(config_path).config

        assert config.runner.stop_timeout == 2.0
        assert config.runner.capture_limit == 4096
        assert config.transcode.preset == "ultrafast"

    def test_missing_file(self, tmp_path):
        """Test explicit path that does not exist."""
        with pytest.raises(ConfigurationError):
            ConfigManager(tmp_path / "nope.yaml").load()

    @pytest.mark.parametrize("content", ["", "target: [unclosed", "- a\n- b\n", "transcode:\n  preset: lightning\n"])
    def test_invalid_file(self, tmp_path, content):
        """Test empty, malformed and invalid configuration files."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text(content)

        with pytest.raises(ConfigurationError):
            ConfigManager(config_path).load()

    def test_init_default_config(self):
        """Test initializing default config file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"

            manager = ConfigManager()
            created_path = manager.init_default_config(config_path)

            assert created_path.exists()
            assert created_path == config_path
            assert ConfigManager(config_path).load() == ManagerConfig()

    def test_init_existing_config_without_force(self):
        """Test initializing config when file exists without force."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"
            config_path.touch()

            manager = ConfigManager()

            with pytest.raises(ConfigurationError):
                manager.init_default_config(config_path, force=False)

    def test_reload(self, tmp_path):
        """Test reload picks up file changes."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("target: rtsp://one\n")
        manager = ConfigManager(config_path)
        assert manager.config.target == "rtsp://one"

        config_path.write_text("target: rtsp://two\n")

        assert manager.reload().target == "rtsp://two"
