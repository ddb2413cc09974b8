"""
Unit tests for client profile loading and process settings.
"""

import pytest

from appointment_etl.core.config import PipelineSettings, ProfileConfigLoader
from appointment_etl.core.models import BlobSourceConfig, SftpSourceConfig

PROFILES_YAML = """
clients:
  - client_id: client-a
    client_key: 7
    transform: bracketed_codes
    date_format: yyyyMMddHHmm
    source:
      type: sftp
      host: sftp.example.org
      username: lakeside
      password: ${TEST_SFTP_PASSWORD}
      home_directory: lakeside
      appointment_directory: inbound
      archive_directory: processed
    settings:
      staging_bucket: staging
      archive_bucket: archive
      protocol_id: 3
  - client_id: client-b
    client_key: 9
    transform: status_sync
    date_format: MM/dd/yyyy
    archive_on_parse_failure: false
    source:
      type: blob
      source_container: inbound
      archive_container: processed
    settings:
      staging_bucket: staging
      archive_bucket: archive
"""


@pytest.fixture
def profiles_file(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_SFTP_PASSWORD", "s3cret")
    path = tmp_path / "clients.yaml"
    path.write_text(PROFILES_YAML)
    return path


class TestProfileConfigLoader:
    """Tests for ProfileConfigLoader"""

    def test_loads_profiles_in_order(self, profiles_file):
        profiles = ProfileConfigLoader(profiles_file).load_profiles()

        assert [p.client_id for p in profiles] == ["client-a", "client-b"]
        assert isinstance(profiles[0].source, SftpSourceConfig)
        assert isinstance(profiles[1].source, BlobSourceConfig)
        assert profiles[1].archive_on_parse_failure is False
        assert profiles[0].archive_on_parse_failure is None

    def test_env_references_expanded(self, profiles_file):
        profile = ProfileConfigLoader(profiles_file).get_profile("client-a")

        assert profile.source.password == "s3cret"

    def test_unset_env_reference_rejected(self, profiles_file, monkeypatch):
        monkeypatch.delenv("TEST_SFTP_PASSWORD")

        with pytest.raises(ValueError, match="TEST_SFTP_PASSWORD"):
            ProfileConfigLoader(profiles_file).load_profiles()

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ProfileConfigLoader(tmp_path / "absent.yaml")

    def test_missing_clients_section_rejected(self, tmp_path):
        path = tmp_path / "clients.yaml"
        path.write_text("profiles: []\n")

        with pytest.raises(ValueError, match="'clients' section"):
            ProfileConfigLoader(path).load_profiles()

    def test_duplicate_client_rejected(self, profiles_file):
        profiles_file.write_text(PROFILES_YAML.replace("client-b", "client-a"))

        with pytest.raises(ValueError, match="Duplicate client_id"):
            ProfileConfigLoader(profiles_file).load_profiles()

    def test_invalid_profile_names_client(self, tmp_path):
        path = tmp_path / "clients.yaml"
        path.write_text(
            "clients:\n"
            "  - client_id: broken\n"
            "    client_key: 1\n"
            "    date_format: MM/dd/yyyy\n"
            "    source: {type: ftp}\n"
            "    settings: {staging_bucket: s, archive_bucket: a}\n"
        )

        with pytest.raises(ValueError, match="Invalid client profile broken"):
            ProfileConfigLoader(path).load_profiles()

    def test_unknown_client_lookup(self, profiles_file):
        with pytest.raises(KeyError):
            ProfileConfigLoader(profiles_file).get_profile("client-z")


class TestSftpSourceConfig:
    """Tests for SFTP credential checks"""

    def test_password_required_without_key_auth(self):
        with pytest.raises(ValueError, match="password is required"):
            SftpSourceConfig(host="h", username="u", archive_directory="a")

    def test_key_path_required_with_key_auth(self):
        with pytest.raises(ValueError, match="private_key_path"):
            SftpSourceConfig(host="h", username="u", archive_directory="a", private_key_authentication=True)


class TestPipelineSettings:
    """Tests for environment-driven settings"""

    def test_defaults(self, monkeypatch):
        for name in ("INTAKE_URL", "POLL_INTERVAL_SECONDS", "ARCHIVE_ON_PARSE_FAILURE",
                     "SCHEDULE_DELAY_MINUTES", "HTTP_TIMEOUT_SECONDS"):
            monkeypatch.delenv(name, raising=False)

        settings = PipelineSettings.from_env()

        assert settings.intake_url is None
        assert settings.poll_interval_seconds is None
        assert settings.archive_on_parse_failure is True
        assert settings.schedule_delay_minutes == 15

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("INTAKE_URL", "https://intake.example.org")
        monkeypatch.setenv("ARCHIVE_ON_PARSE_FAILURE", "no")
        monkeypatch.setenv("SCHEDULE_DELAY_MINUTES", "5")
        monkeypatch.setenv("POLL_INTERVAL_SECONDS", "120")

        settings = PipelineSettings.from_env()

        assert settings.intake_url == "https://intake.example.org"
        assert settings.archive_on_parse_failure is False
        assert settings.schedule_delay_minutes == 5
        assert settings.poll_interval_seconds == 120
