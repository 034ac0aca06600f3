import json
import pytest
from unittest.mock import MagicMock, patch, mock_open
from datetime import datetime, timezone

from samlcreds.usage import load_yaml_config, parse_cli_args, merge_configs
from samlcreds.main import setup_configuration, wait_for_refresh, main
from samlcreds.config import SamlCredsConfig
from samlcreds.enums import RememberRole
from samlcreds.types import TemporaryCredentials


class TestLoadYamlConfig:
    """Test load_yaml_config function with various scenarios."""

    def test_load_yaml_config_valid_file(self) -> None:
        yaml_content = """
        region: eu-west-1
        profile_name: Role Name
        remember_role: Session
        """
        with patch('builtins.open', mock_open(read_data=yaml_content)):
            result = load_yaml_config("test.yaml")
            assert result["region"] == "eu-west-1"
            assert result["profile_name"] == "Role Name"

    def test_load_yaml_config_file_not_found(self) -> None:
        """Test handling of missing YAML file."""
        with patch('builtins.open', side_effect=FileNotFoundError):
            result = load_yaml_config("nonexistent.yaml")
            assert result == {}

    def test_load_yaml_config_empty_file(self) -> None:
        """Test loading empty YAML file."""
        with patch('builtins.open', mock_open(read_data="")):
            assert load_yaml_config("empty.yaml") == {}

    def test_load_yaml_config_no_path(self) -> None:
        """Test that no path means no YAML configuration."""
        assert load_yaml_config(None) == {}

    def test_load_yaml_config_invalid_yaml(self) -> None:
        """Test handling of invalid YAML content."""
        with patch('builtins.open', mock_open(read_data="invalid: yaml: content:")):
            with pytest.raises(Exception):
                load_yaml_config("invalid.yaml")


class TestParseCliArgs:
    """Test parse_cli_args function."""

    def test_defaults(self) -> None:
        args = parse_cli_args([])
        assert args.config is None
        assert args.role is None
        assert args.debug is False
        assert not hasattr(args, "auto_refresh")
        assert not hasattr(args, "dev")

    def test_all_options(self) -> None:
        args = parse_cli_args([
            "--config", "samlcreds.yaml",
            "--role", "arn:aws:iam::111122223333:role/Deploy",
            "--org", "acme",
            "--provider", "aws",
            "--region", "eu-west-1",
            "--profile-name", "Account ID",
            "--no-auto-refresh",
            "--remember-role", "Global",
            "--dev",
            "--debug",
        ])
        assert args.role == "arn:aws:iam::111122223333:role/Deploy"
        assert args.org == "acme"
        assert args.profile_name == "Account ID"
        assert args.auto_refresh is False
        assert args.remember_role == "Global"
        assert args.dev is True
        assert args.debug is True

    def test_invalid_remember_role(self) -> None:
        with pytest.raises(SystemExit):
            parse_cli_args(["--remember-role", "Forever"])


class TestMergeConfigs:
    """Test merge_configs function."""

    def test_cli_overrides_yaml(self) -> None:
        yaml_config = {"region": "us-west-2", "auto_refresh": True, "github_token": "t"}
        cli_args = parse_cli_args(["--region", "eu-west-1", "--no-auto-refresh"])

        config = merge_configs(yaml_config, cli_args)

        assert config.region == "eu-west-1"
        assert config.auto_refresh is False
        assert config.github_token == "t"

    def test_unset_cli_values_keep_yaml(self) -> None:
        config = merge_configs({"region": "us-west-2", "remember_role": "Session"}, parse_cli_args([]))

        assert config.region == "us-west-2"
        assert config.remember_role == RememberRole.SESSION

    def test_non_config_cli_args_ignored(self) -> None:
        config = merge_configs({}, parse_cli_args(["--org", "acme", "--debug"]))
        assert not hasattr(config, "org")

    def test_invalid_yaml_value_raises(self) -> None:
        with pytest.raises(ValueError):
            merge_configs({"totp_max_attempts": "lots"}, parse_cli_args([]))


class TestSetupConfiguration:
    """Test setup_configuration function."""

    def test_valid_configuration(self) -> None:
        config = setup_configuration(parse_cli_args(["--region", "eu-west-1"]), {})
        assert isinstance(config, SamlCredsConfig)
        assert config.region == "eu-west-1"

    def test_invalid_configuration_exits(self) -> None:
        with patch('samlcreds.main.OutputHandler.error') as mock_error:
            with pytest.raises(SystemExit) as exc_info:
                setup_configuration(parse_cli_args([]), {"http_timeout": 0})

        assert exc_info.value.code == 1
        assert mock_error.call_args.args[0] == "Configuration Error"


class TestWaitForRefresh:
    """Test wait_for_refresh function."""

    def test_returns_when_nothing_armed(self) -> None:
        app = MagicMock()
        app.scheduler.is_armed = False

        wait_for_refresh(app)

        app.scheduler.wait.assert_not_called()

    def test_waits_until_idle(self) -> None:
        app = MagicMock()
        app.scheduler.is_armed = True
        app.scheduler.wait.side_effect = [False, False, True]

        wait_for_refresh(app)

        assert app.scheduler.wait.call_count == 3
        app.stop_refresh.assert_not_called()

    def test_ctrl_c_stops_refresh(self) -> None:
        app = MagicMock()
        app.scheduler.is_armed = True
        app.scheduler.wait.side_effect = KeyboardInterrupt

        wait_for_refresh(app)

        app.stop_refresh.assert_called_once()


class TestMain:
    """Test the main entry point."""

    def _credentials(self) -> TemporaryCredentials:
        return TemporaryCredentials(
            access_key_id="AKIAEXAMPLE",
            secret_access_key="secret",
            session_token="token",
            expiration=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

    def test_main_assumes_cli_role(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch('samlcreds.main.setup_logging'), \
                patch('samlcreds.main.SamlCredsApp') as mock_app_cls:
            app = mock_app_cls.return_value
            app.activate.return_value = self._credentials()
            app.scheduler.is_armed = False

            main(["--role", "arn:aws:iam::111122223333:role/Deploy", "--org", "acme"])

        app.activate.assert_called_once_with("arn:aws:iam::111122223333:role/Deploy", "acme", None)
        # Profile was persisted, so nothing is printed for credential_process
        assert "AccessKeyId" not in capsys.readouterr().out

    def test_main_prints_credential_process_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch('samlcreds.main.setup_logging'), \
                patch('samlcreds.main.SamlCredsApp') as mock_app_cls:
            app = mock_app_cls.return_value
            app.activate.return_value = self._credentials()
            app.scheduler.is_armed = False

            main(["--profile-name", "None", "--no-auto-refresh"])

        payload = json.loads(capsys.readouterr().out)
        assert payload["Version"] == 1
        assert payload["AccessKeyId"] == "AKIAEXAMPLE"
        assert payload["SessionToken"] == "token"

    def test_main_waits_for_refresh(self) -> None:
        with patch('samlcreds.main.setup_logging'), \
                patch('samlcreds.main.SamlCredsApp') as mock_app_cls, \
                patch('samlcreds.main.wait_for_refresh') as mock_wait:
            main([])

        mock_wait.assert_called_once_with(mock_app_cls.return_value)
