import json

import pytest

from golobe_e2e.config import Credentials, HarnessConfig, TargetProfile, load_credentials, settings


@pytest.fixture()
def no_credential_env(monkeypatch):
    monkeypatch.delenv("TEST_USER_EMAIL", raising=False)
    monkeypatch.delenv("TEST_USER_PASSWORD", raising=False)


def write_state(path, email, password):
    path.write_text(json.dumps({"test_user": {"email": email, "password": password}}))
    return path


class TestCredentials:
    def test_state_file(self, tmp_path, no_credential_env):
        state = write_state(tmp_path / "state.json", "file@example.com", "from-file")
        creds = load_credentials(state)
        assert creds == Credentials("file@example.com", "from-file")
        assert creds.is_complete

    def test_environment_wins(self, tmp_path, monkeypatch, no_credential_env):
        state = write_state(tmp_path / "state.json", "file@example.com", "from-file")
        monkeypatch.setenv("TEST_USER_PASSWORD", "from-env")
        creds = load_credentials(state)
        assert creds.email == "file@example.com"
        assert creds.password == "from-env"

    def test_missing_source_is_incomplete(self, tmp_path, no_credential_env):
        creds = load_credentials(tmp_path / "absent.json")
        assert not creds.is_complete

    def test_unreadable_state_file(self, tmp_path, no_credential_env):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")
        with pytest.raises(RuntimeError):
            load_credentials(broken)

    def test_repr_masks_password(self):
        assert "s3cret" not in repr(Credentials("a@b.c", "s3cret"))


class TestHarnessConfig:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("UI_BASE_URL", "http://stage.golobe.test:8080")
        monkeypatch.setenv("UI_ACTION_TIMEOUT_MS", "1234")
        monkeypatch.setenv("PLAYWRIGHT_HEADLESS", "false")
        monkeypatch.setenv("UI_THEME_COOKIE", "color-mode")
        config = HarnessConfig()
        assert config.base_url == "http://stage.golobe.test:8080"
        assert config.timeouts.action_ms == 1234
        assert config.browser.headless is False
        assert config.theme_cookie == "color-mode"

    def test_url_joins_paths(self):
        config = HarnessConfig()
        profile = TargetProfile("x", "http://golobe.test/base/", Credentials("", ""))
        with config.use_profile(profile):
            assert config.url("/login") == "http://golobe.test/base/login"
            assert config.url("fr/flights") == "http://golobe.test/base/fr/flights"

    def test_use_profile_restores_previous(self):
        before = settings.profile
        other = TargetProfile("other", "http://other.test", Credentials("o@x.y", "pw"))
        with settings.use_profile(other) as active:
            assert settings.base_url == "http://other.test"
            assert active is not other
        assert settings.profile is before
