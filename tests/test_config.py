"""
配置模块单元测试
Config Module Unit Tests
"""

import pytest
from pydantic import ValidationError

from goget_rates.core.config import Config, get_config
from goget_rates.core.config_models import ConfigModel, GeocoderConfig, GoGetConfig, PickupConfig
from goget_rates.core.error_handler import ConfigError

CONFIG_YAML = """
app:
  name: "goget-rates"
  log_level: "DEBUG"
security:
  callback_token: "${RATE_CALLBACK_TOKEN}"
goget:
  endpoint: "https://file.goget.test/fee"
  api_token: "${GOGET_API_TOKEN}"
geocoder:
  contact_email: "${NOMINATIM_EMAIL}"
  attempts:
    - [1.0, 0.1]
    - [2.0, 0.0]
pickup:
  name: "Kedai Kopi"
"""


@pytest.fixture
def fresh_config():
    """每个用例重新构建单例"""
    Config._instance = None
    get_config.cache_clear()
    yield
    Config._instance = None
    get_config.cache_clear()


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


class TestConfig:
    """配置管理类测试"""

    def test_config_singleton(self, fresh_config, clean_env, config_file):
        """测试单例模式"""
        config1 = Config(str(config_file))
        config2 = Config()
        assert config1 is config2

    def test_load_yaml_and_resolve_env_references(self, fresh_config, clean_env, config_file):
        clean_env.setenv("GOGET_API_TOKEN", "tok-from-env")
        config = Config(str(config_file))

        assert config.get("goget.endpoint") == "https://file.goget.test/fee"
        assert config.get("goget.api_token") == "tok-from-env"
        assert config.get("app.log_level") == "DEBUG"
        assert config.get("pickup.name") == "Kedai Kopi"
        assert config.get("nonexistent.key", "default") == "default"

    def test_unset_env_reference_falls_back_to_default(self, fresh_config, clean_env, config_file):
        config = Config(str(config_file))

        assert config.get("security.callback_token") is None
        assert config.get("geocoder.contact_email") == "email@example.com"

    def test_env_overrides_beat_file(self, fresh_config, clean_env, config_file):
        clean_env.setenv("GOGET_API_ENDPOINT", "https://env.goget.test/fee")
        clean_env.setenv("DEFAULT_PICKUP_LAT", "3.07")
        clean_env.setenv("DEFAULT_PICKUP_LNG", "101.52")
        clean_env.setenv("RATES_DEBUG", "true")

        model = Config(str(config_file)).to_model()

        assert model.goget.endpoint == "https://env.goget.test/fee"
        assert model.pickup.lat == 3.07
        assert model.pickup.lng == 101.52
        assert model.app.debug_responses is True

    def test_attempts_parsed_from_yaml(self, fresh_config, clean_env, config_file):
        model = Config(str(config_file)).to_model()

        assert model.geocoder.attempts == [(1.0, 0.1), (2.0, 0.0)]

    def test_get_section(self, fresh_config, clean_env, config_file):
        goget = Config(str(config_file)).get_section("goget")

        assert goget["auth_scheme"] == "Token token={token}"
        assert goget["ride_id"] == 2

    def test_reload_picks_up_changes(self, fresh_config, clean_env, config_file):
        config = Config(str(config_file))
        config_file.write_text('goget:\n  endpoint: "https://new.goget.test/fee"\n', encoding="utf-8")

        config.reload()

        assert config.get("goget.endpoint") == "https://new.goget.test/fee"
        assert config.get("pickup.name") == "Shop Origin"

    def test_different_path_triggers_reload(self, fresh_config, clean_env, config_file, temp_dir):
        config = Config(str(config_file))
        other = temp_dir / "other.yaml"
        other.write_text("rates:\n  default_currency: SGD\n", encoding="utf-8")

        assert Config(str(other)) is config
        assert config.get("rates.default_currency") == "SGD"

    def test_missing_file_uses_defaults(self, fresh_config, clean_env, temp_dir):
        config = Config(str(temp_dir / "nonexistent.yaml"))

        assert config.get("goget.endpoint") is None
        assert config.get("rates.service_code") == "GOGET_NOW"

    def test_invalid_yaml_raises_config_error(self, fresh_config, clean_env, temp_dir):
        path = temp_dir / "broken.yaml"
        path.write_text("goget: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            Config(str(path))

    def test_non_mapping_root_raises_config_error(self, fresh_config, clean_env, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            Config(str(path))

    def test_invalid_values_raise_config_error(self, fresh_config, clean_env, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("goget:\n  timeout_seconds: -1\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            Config(str(path))
        assert exc_info.value.reason == "invalid_config"

    def test_empty_section_accepts_env_override(self, fresh_config, clean_env, temp_dir):
        path = temp_dir / "sparse.yaml"
        path.write_text("goget:\n", encoding="utf-8")
        clean_env.setenv("GOGET_API_TOKEN", "abc")

        assert Config(str(path)).get("goget.api_token") == "abc"


class TestConfigModels:
    """配置模型测试"""

    def test_defaults(self):
        model = ConfigModel()

        assert model.goget.timeout_seconds == 4.0
        assert model.goget.start_lead_minutes == 5
        assert model.goget.allow_endpoint_override is False
        assert model.geocoder.bias_radius_deg == 0.27
        assert model.geocoder.bounded is False
        assert model.rates.default_currency == "MYR"
        assert model.app.debug_responses is False

    def test_models_are_frozen(self):
        model = ConfigModel()

        with pytest.raises(ValidationError):
            model.goget.endpoint = "https://elsewhere.test"

    def test_auth_scheme_requires_placeholder(self):
        with pytest.raises(ValidationError):
            GoGetConfig(auth_scheme="Bearer")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            ConfigModel.from_dict({"app": {"log_level": "LOUD"}})

    @pytest.mark.parametrize("attempts", [[], [[0, 0.1]], [[1.0, -0.1]]])
    def test_invalid_attempts(self, attempts):
        with pytest.raises(ValidationError):
            GeocoderConfig(attempts=attempts)

    def test_pickup_coordinates_must_be_finite(self):
        with pytest.raises(ValidationError):
            PickupConfig(lat=float("nan"))
