"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from storefront.config import (
    ChatbotConfig,
    ConfigError,
    LoggingConfig,
    ServerConfig,
    StorefrontConfig,
    _expand_env_vars,
    find_config_file,
    get_config,
    load_config,
    load_config_file,
    load_config_from_env,
    set_config,
)

ENV_VARS = (
    "HOST",
    "PORT",
    "ENVIRONMENT",
    "CORS_ORIGINS",
    "DATABASE_URL",
    "DATABASE_ECHO",
    "DATABASE_POOL_SIZE",
    "DATABASE_MAX_OVERFLOW",
    "SESSION_SECRET",
    "STRIPE_SECRET_KEY",
    "STRIPE_PUBLISHABLE_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "OPENAI_API_KEY",
    "STOREFRONT_CHAT_MODEL",
    "RAKUTEN_APP_ID",
    "RAKUTEN_AFFILIATE_ID",
    "WHOLESALE2B_API_KEY",
    "WHOLESALE2B_API_ENDPOINT",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FILE",
    "STOREFRONT_CONFIG",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the loader reads."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigDataClasses:
    """Test configuration data classes."""

    def test_server_defaults(self):
        config = ServerConfig()
        assert config.port == 3001
        assert config.environment == "development"

    def test_chatbot_defaults(self):
        config = ChatbotConfig()
        assert config.api_key is None
        assert config.rate_limit == "10/minute"

    def test_logging_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.format == "human"
        assert config.file is None

    def test_from_dict(self):
        config = StorefrontConfig.from_dict({
            "server": {"port": 8080},
            "rakuten": {"app_id": "app-123", "hits": 10},
        })
        assert config.server.port == 8080
        assert config.rakuten.app_id == "app-123"
        assert config.rakuten.hits == 10
        assert config.stripe.secret_key is None

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigError, match="server"):
            StorefrontConfig.from_dict({"server": {"bogus": True}})

    def test_from_dict_rejects_non_mapping_section(self):
        with pytest.raises(ConfigError, match="must be a mapping"):
            StorefrontConfig.from_dict({"stripe": "sk_test"})

    def test_missing_integrations(self):
        config = StorefrontConfig()
        assert config.missing_integrations() == [
            "SESSION_SECRET",
            "STRIPE_SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
            "OPENAI_API_KEY",
            "RAKUTEN_APP_ID",
            "WHOLESALE2B_API_KEY",
        ]

        config.stripe.secret_key = "sk_test"
        config.chatbot.api_key = "sk-openai"
        assert "STRIPE_SECRET_KEY" not in config.missing_integrations()
        assert "OPENAI_API_KEY" not in config.missing_integrations()

        config.session.secret = "a-real-secret"
        assert "SESSION_SECRET" not in config.missing_integrations()


class TestEnvExpansion:
    """Tests for ${VAR} expansion."""

    def test_expands_nested_values(self, monkeypatch):
        monkeypatch.setenv("STRIPE_KEY_FOR_TEST", "sk_test_123")
        data = {"stripe": {"secret_key": "${STRIPE_KEY_FOR_TEST}"}, "list": ["$STRIPE_KEY_FOR_TEST"]}
        expanded = _expand_env_vars(data)
        assert expanded["stripe"]["secret_key"] == "sk_test_123"
        assert expanded["list"] == ["sk_test_123"]

    def test_leaves_unknown_variables(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        assert _expand_env_vars("${NOT_SET_ANYWHERE}") == "${NOT_SET_ANYWHERE}"


class TestConfigFiles:
    """Tests for loading YAML and TOML files."""

    def test_load_yaml(self, tmp_path: Path):
        path = tmp_path / "storefront.yaml"
        path.write_text("server:\n  port: 4000\nrakuten:\n  default_keyword: cameras\n")
        data = load_config_file(path)
        assert data == {"server": {"port": 4000}, "rakuten": {"default_keyword": "cameras"}}

    def test_load_toml(self, tmp_path: Path):
        path = tmp_path / ".storefront.toml"
        path.write_text('[logging]\nlevel = "DEBUG"\n')
        assert load_config_file(path) == {"logging": {"level": "DEBUG"}}

    def test_empty_yaml(self, tmp_path: Path):
        path = tmp_path / "storefront.yaml"
        path.write_text("")
        assert load_config_file(path) == {}

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "storefront.yaml"
        path.write_text("server: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse YAML"):
            load_config_file(path)

    def test_unsupported_format(self, tmp_path: Path):
        path = tmp_path / "storefront.ini"
        path.write_text("[server]\n")
        with pytest.raises(ConfigError, match="Unsupported"):
            load_config_file(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config_file(tmp_path / "nope.yaml")

    def test_find_config_file_in_parent(self, tmp_path: Path):
        (tmp_path / "storefront.yaml").write_text("{}\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == (tmp_path / "storefront.yaml").resolve()


class TestLoadConfig:
    """Tests for the priority chain."""

    def test_env_overrides_file(self, tmp_path: Path, clean_env):
        path = tmp_path / "storefront.yaml"
        path.write_text("server:\n  port: 4000\n  host: 127.0.0.1\n")
        clean_env.setenv("PORT", "5000")

        config = load_config(config_file=path)

        assert config.server.port == 5000
        assert config.server.host == "127.0.0.1"

    def test_env_values(self, clean_env):
        clean_env.setenv("STRIPE_SECRET_KEY", "sk_test_abc")
        clean_env.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        clean_env.setenv("DATABASE_ECHO", "true")

        data = load_config_from_env()

        assert data["stripe"] == {"secret_key": "sk_test_abc"}
        assert data["server"]["cors_origins"] == ["http://a.test", "http://b.test"]
        assert data["database"]["echo"] is True

    def test_invalid_port_env(self, clean_env):
        clean_env.setenv("PORT", "eighty")
        with pytest.raises(ConfigError, match="PORT"):
            load_config_from_env()

    def test_invalid_log_format(self, tmp_path: Path, clean_env):
        path = tmp_path / "storefront.yaml"
        path.write_text("logging:\n  format: xml\n")
        with pytest.raises(ConfigError, match="log format"):
            load_config(config_file=path)

    def test_config_path_from_environment(self, tmp_path: Path, clean_env):
        path = tmp_path / "deploy.yaml"
        path.write_text("server:\n  port: 4100\n")
        clean_env.setenv("STOREFRONT_CONFIG", str(path))

        config = load_config(search_path=tmp_path)

        assert config.server.port == 4100

    def test_production_rejects_dev_session_secret(self, clean_env):
        clean_env.setenv("ENVIRONMENT", "production")
        with pytest.raises(ConfigError, match="SESSION_SECRET"):
            load_config(search_path=Path("/"))

    def test_production_accepts_real_session_secret(self, clean_env):
        clean_env.setenv("ENVIRONMENT", "production")
        clean_env.setenv("SESSION_SECRET", "b7f0c1e2d3")

        config = load_config(search_path=Path("/"))

        assert config.session.secret == "b7f0c1e2d3"

    def test_development_allows_dev_session_secret(self, clean_env):
        config = load_config(search_path=Path("/"))
        assert config.session.secret == "storefront-dev-secret"

    def test_get_config_caches(self):
        config = StorefrontConfig()
        set_config(config)
        assert get_config() is config
