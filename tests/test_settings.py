# tests/test_settings.py
"""Test configuration loading, saving and validation"""

import yaml

from lyrics_resolver.config.settings import ALL_PROVIDERS, Settings, ProvidersConfig


class TestSettings:
    """Test the Settings object"""

    def test_defaults(self, settings):
        """Test default values"""
        assert settings.lyrics.providers == ALL_PROVIDERS
        assert settings.lyrics.good_enough_score == 70
        assert settings.lyrics.deadline == 35.0
        assert settings.cache.capacity == 200
        assert settings.cache.ttl == 600
        assert settings.verification.confidence_threshold == 50
        assert not settings.verification.enabled

    def test_load_from_yaml(self, temp_dir, monkeypatch):
        """Test applying a config file"""
        monkeypatch.delenv('LYRICS_RESOLVER_LOG_LEVEL', raising=False)
        config_file = temp_dir / "config.yaml"
        config_file.write_text(yaml.safe_dump({
            'lyrics': {'deadline': 12.5, 'providers': ['lrclib', 'genius'], 'unknown_key': 1},
            'cache': {'capacity': 50},
            'logging': {'level': 'DEBUG'},
            'unknown_section': {'x': 1},
        }))

        settings = Settings(str(config_file))

        assert settings.loaded_from == config_file
        assert settings.lyrics.deadline == 12.5
        assert settings.lyrics.providers == ['lrclib', 'genius']
        assert not hasattr(settings.lyrics, 'unknown_key')
        assert settings.cache.capacity == 50
        assert settings.logging.level == 'DEBUG'

    def test_credentials_never_read_from_file(self, temp_dir, monkeypatch):
        """Test that the providers section of a config file is ignored"""
        monkeypatch.delenv('GENIUS_API_KEY', raising=False)
        config_file = temp_dir / "config.yaml"
        config_file.write_text(yaml.safe_dump({'providers': {'genius_api_key': 'from-file'}}))

        settings = Settings(str(config_file))

        assert settings.providers.genius_api_key == ""

    def test_credentials_from_environment(self, monkeypatch):
        """Test environment variable credentials"""
        monkeypatch.setenv('GENIUS_API_KEY', 'from-env')
        monkeypatch.setenv('GOOGLE_API_KEY', 'google-key')

        settings = Settings()

        assert settings.providers.genius_api_key == 'from-env'
        assert settings.providers.is_configured('genius')
        assert settings.providers.credential_for('gemini') == 'google-key'

    def test_save_config_leaves_out_credentials(self, settings, temp_dir):
        """Test that saved configuration holds no secrets"""
        settings.providers.openai_api_key = "sk-secret"
        settings.lyrics.deadline = 20.0

        target = settings.save_config(str(temp_dir / "nested" / "config.yaml"))

        text = target.read_text(encoding='utf-8')
        assert "sk-secret" not in text
        saved = yaml.safe_load(text)
        assert 'providers' not in saved
        assert saved['lyrics']['deadline'] == 20.0

    def test_saved_config_loads_back(self, settings, temp_dir):
        """Test saving and reloading keeps values"""
        settings.cache.ttl = 1200
        target = settings.save_config(str(temp_dir / "config.yaml"))

        assert Settings(str(target)).cache.ttl == 1200

    def test_enabled_providers(self, settings):
        """Test that providers without credentials are left out"""
        assert settings.enabled_providers() == ['lrclib', 'syncedlyrics', 'melon', 'bugs']

        settings.providers.groq_api_key = "gsk"
        assert 'groq' in settings.enabled_providers()


class TestValidation:
    """Test configuration validation"""

    def test_default_configuration_is_valid(self, settings):
        valid, errors = settings.validate()
        assert valid, errors

    def test_reports_every_problem(self, settings):
        settings.lyrics.providers = ['lrclib', 'azlyrics']
        settings.lyrics.good_enough_score = 150
        settings.lyrics.deadline = 0
        settings.cache.durable_backend = 'redis'
        settings.verification.verifiers = ['bard']

        valid, errors = settings.validate()

        assert not valid
        assert len(errors) == 5
        assert any('azlyrics' in e for e in errors)
        assert any('redis' in e for e in errors)

    def test_no_configured_providers(self, settings):
        settings.lyrics.providers = ['genius', 'openai']
        settings.providers = ProvidersConfig()

        valid, errors = settings.validate()

        assert not valid
        assert "No configured lyrics providers" in errors
