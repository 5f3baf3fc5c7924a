"""
Unit tests for configuration data models.

Tests the engine settings model including defaults, validation,
policy conversion and configuration warnings.
"""

import pytest
from pydantic import ValidationError

from filekit.models.config import EngineConfig
from filekit.models.transfer import OverwritePolicy


class TestEngineConfig:
    """Test cases for EngineConfig."""

    def test_default_config(self):
        """Test default engine configuration."""
        config = EngineConfig()

        assert config.verbose is False
        assert config.text_sample_size == 512
        assert config.copy_buffer_size == 1024 * 1024
        assert config.max_workers == 1
        assert config.default_overwrite_policy == OverwritePolicy.REJECT
        assert config.preserve_permissions is True
        assert config.probe_prefix == ".filekit-probe-"

    def test_string_policy_conversion(self):
        """Test conversion of string policy to enum."""
        assert EngineConfig(default_overwrite_policy="PROMPT").default_overwrite_policy == OverwritePolicy.PROMPT

    def test_invalid_policy(self):
        with pytest.raises(ValueError, match="Invalid overwrite policy"):
            EngineConfig(default_overwrite_policy="sometimes")

    @pytest.mark.parametrize("field,value", [
        ("max_workers", 0),
        ("max_workers", 65),
        ("text_sample_size", 0),
        ("copy_buffer_size", -1),
        ("probe_prefix", ""),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            EngineConfig(**{field: value})

    def test_probe_prefix_rejects_separators(self):
        with pytest.raises(ValidationError, match="path separators"):
            EngineConfig(probe_prefix="tmp/probe-")

    def test_buffer_size_human_readable(self):
        assert EngineConfig().get_buffer_size_human_readable() == "1.0 MB"
        assert EngineConfig(copy_buffer_size=512).get_buffer_size_human_readable() == "512.0 B"

    def test_validate_configuration_defaults_clean(self):
        assert EngineConfig().validate_configuration() == []

    def test_validate_configuration_warnings(self):
        warnings = EngineConfig(
            default_overwrite_policy="overwrite",
            text_sample_size=16,
            copy_buffer_size=128 * 1024 * 1024,
        ).validate_configuration()

        assert len(warnings) == 3
        assert any("replaced" in w for w in warnings)
        assert any("misclassify" in w for w in warnings)
        assert any("memory" in w for w in warnings)

    def test_prompt_with_workers_warns(self):
        warnings = EngineConfig(default_overwrite_policy="prompt", max_workers=4).validate_configuration()

        assert warnings == ["Prompting batches always run sequentially; max_workers is ignored for them"]

    def test_dict_round_trip(self):
        config = EngineConfig(verbose=True, max_workers=8, default_overwrite_policy="overwrite")
        data = config.to_dict()

        assert data['default_overwrite_policy'] == 'overwrite'
        assert EngineConfig.from_dict(data) == config

    def test_string_representation(self):
        text = str(EngineConfig(verbose=True, max_workers=2))

        assert "Workers: 2" in text
        assert "Overwrite: reject" in text
        assert "Verbose" in text
