"""Tests for configuration loading and validation."""

import pytest

from teamsync.config.loader import (
    ConfigLoader,
    ConfigurationError,
    EnvironmentVariableError,
    SecurityError,
    find_config_file,
    load_config_from_dict,
    load_config_from_path,
)
from teamsync.config.team_models import (
    DynamicTeamRule,
    TeamDefinition,
    TeamMemberFilter,
    TeamPrivacy,
    TeamRole,
    UnmanagedTeamsMode,
)

VALID_CONFIG = """
version: 1
organization: ${GITHUB_ORG:acme}
github:
  token: ${GITHUB_TOKEN}
teams:
  unmanaged_teams: warn
  definitions:
    - name: Platform
      description: Platform team
      privacy: closed
      members:
        - username: alice
          role: maintainer
        - username: bob
    - name: Observers
    - name: Retired
      members: []
  dynamic_rules:
    - name: Everyone
      type: all_org_members
"""


@pytest.fixture
def github_token(monkeypatch):
    """Provide a GitHub token through the environment."""
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    monkeypatch.delenv("GITHUB_ORG", raising=False)
    return "ghp_test"


@pytest.fixture
def loader():
    """Create a loader that ignores local .env files."""
    return ConfigLoader(load_env_file=False)


def write_config(tmp_path, content, name="team-sync.yaml"):
    path = tmp_path / name
    path.write_text(content)
    return path


class TestConfigLoader:
    """Test ConfigLoader.load_config."""

    def test_load_valid_config(self, tmp_path, loader, github_token):
        """Test loading a complete configuration."""
        config = loader.load_config(write_config(tmp_path, VALID_CONFIG))

        assert config.version == 1
        assert config.organization == "acme"
        assert config.github.token.get_secret_value() == "ghp_test"
        assert str(config.github.api_url).startswith("https://api.github.com")

        teams = config.teams
        assert teams.unmanaged_teams == UnmanagedTeamsMode.WARN
        assert teams.dry_run is False
        platform, observers, retired = teams.definitions
        assert platform.privacy == TeamPrivacy.CLOSED
        assert platform.members[0].role == TeamRole.MAINTAINER
        assert platform.members[1].role == TeamRole.MEMBER
        assert observers.manages_members is False
        assert retired.manages_members is True
        assert teams.dynamic_rules[0].type == "all_org_members"

    def test_env_var_overrides_default(self, tmp_path, loader, github_token, monkeypatch):
        """Test that a set variable wins over the inline default."""
        monkeypatch.setenv("GITHUB_ORG", "globex")

        config = loader.load_config(write_config(tmp_path, VALID_CONFIG))

        assert config.organization == "globex"

    def test_missing_env_var(self, tmp_path, loader, monkeypatch):
        """Test that an unset required variable is reported."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        with pytest.raises(EnvironmentVariableError, match="GITHUB_TOKEN"):
            loader.load_config(write_config(tmp_path, VALID_CONFIG))

    def test_disallowed_env_var(self, tmp_path, loader):
        """Test that variables outside the allowlist are rejected."""
        content = "github:\n  token: ${HOME}\n"

        with pytest.raises(SecurityError, match="not in allowlist"):
            loader.load_config(write_config(tmp_path, content))

    def test_unsafe_env_value(self, tmp_path, loader, monkeypatch):
        """Test that values able to alter the YAML structure are rejected."""
        monkeypatch.setenv("GITHUB_TOKEN", "abc\nteams: {}")

        with pytest.raises(SecurityError):
            loader.load_config(write_config(tmp_path, VALID_CONFIG))

    def test_dotenv_file(self, tmp_path, monkeypatch):
        """Test that variables are read from a .env file next to the config."""
        monkeypatch.setenv("GITHUB_TOKEN", "placeholder")
        monkeypatch.delenv("GITHUB_TOKEN")
        (tmp_path / ".env").write_text("GITHUB_TOKEN=ghp_from_dotenv\n")

        config = ConfigLoader().load_config(write_config(tmp_path, VALID_CONFIG))

        assert config.github.token.get_secret_value() == "ghp_from_dotenv"

    def test_missing_file(self, tmp_path, loader):
        """Test loading a file that does not exist."""
        with pytest.raises(ConfigurationError, match="not found"):
            loader.load_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path, loader):
        """Test that YAML syntax errors are wrapped."""
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            loader.load_config(write_config(tmp_path, "github: [unclosed\n"))

    def test_non_mapping_document(self, tmp_path, loader):
        """Test that a top-level list is rejected."""
        with pytest.raises(ConfigurationError, match="YAML object"):
            loader.load_config(write_config(tmp_path, "- a\n- b\n"))

    def test_unsupported_version(self, tmp_path, loader, github_token):
        """Test that only schema version 1 is accepted."""
        content = VALID_CONFIG.replace("version: 1", "version: 2")

        with pytest.raises(ConfigurationError, match="validation failed"):
            loader.load_config(write_config(tmp_path, content))

    def test_validate_config_file(self, tmp_path, loader, github_token):
        """Test the boolean validation helper."""
        valid, error = loader.validate_config_file(write_config(tmp_path, VALID_CONFIG))
        assert valid is True
        assert error is None

        valid, error = loader.validate_config_file(tmp_path / "absent.yaml")
        assert valid is False
        assert "not found" in error

    def test_get_missing_env_vars(self, tmp_path, loader, monkeypatch):
        """Test listing variables without value or default."""
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.delenv("GITHUB_ORG", raising=False)

        missing = loader.get_missing_env_vars(write_config(tmp_path, VALID_CONFIG))

        assert missing == ["GITHUB_TOKEN"]


class TestTeamSchema:
    """Test team configuration validation rules."""

    def base_config(self, teams):
        return {"github": {"token": "ghp_test"}, "teams": teams}

    def test_no_teams_section(self):
        """Test that the teams section is optional."""
        config = load_config_from_dict({"github": {"token": "ghp_test"}})
        assert config.teams is None

    def test_blank_token_rejected(self):
        """Test that a blank token is rejected."""
        with pytest.raises(ConfigurationError, match="token cannot be empty"):
            load_config_from_dict({"github": {"token": "   "}})

    def test_blank_organization_normalized(self):
        """Test that a blank organization becomes None."""
        config = load_config_from_dict({"organization": "  ", "github": {"token": "t"}})
        assert config.organization is None

    def test_duplicate_members_rejected(self):
        """Test that a user may only appear once per team."""
        teams = {"definitions": [{"name": "A", "members": [{"username": "x"}, {"username": "x"}]}]}

        with pytest.raises(ConfigurationError, match="Duplicate team member"):
            load_config_from_dict(self.base_config(teams))

    def test_invalid_role_rejected(self):
        """Test that unknown roles are rejected."""
        teams = {"definitions": [{"name": "A", "members": [{"username": "x", "role": "owner"}]}]}

        with pytest.raises(ConfigurationError):
            load_config_from_dict(self.base_config(teams))

    def test_by_filter_requires_filter(self):
        """Test that by_filter rules need a filter block."""
        teams = {"dynamic_rules": [{"name": "A", "type": "by_filter"}]}

        with pytest.raises(ConfigurationError, match="by_filter rules require a filter block"):
            load_config_from_dict(self.base_config(teams))

    def test_composite_requires_compose(self):
        """Test that composite rules need a compose block."""
        teams = {"dynamic_rules": [{"name": "A", "type": "composite"}]}

        with pytest.raises(ConfigurationError, match="composite rules require a compose block"):
            load_config_from_dict(self.base_config(teams))

    def test_filter_only_on_by_filter(self):
        """Test that other rule types may not carry a filter."""
        teams = {
            "dynamic_rules": [
                {"name": "A", "type": "all_org_members", "filter": {"usernames": ["x"]}}
            ]
        }

        with pytest.raises(ConfigurationError, match="Only by_filter rules may specify filter"):
            load_config_from_dict(self.base_config(teams))

    def test_compose_only_on_composite(self):
        """Test that other rule types may not carry a compose block."""
        teams = {
            "dynamic_rules": [
                {"name": "A", "type": "all_org_members", "compose": {"union": ["x"]}}
            ]
        }

        with pytest.raises(ConfigurationError, match="Only composite rules may specify compose"):
            load_config_from_dict(self.base_config(teams))

    def test_empty_filter_rejected(self):
        """Test that a filter needs at least one criterion."""
        teams = {"dynamic_rules": [{"name": "A", "type": "by_filter", "filter": {}}]}

        with pytest.raises(ConfigurationError, match="at least one criterion"):
            load_config_from_dict(self.base_config(teams))

    def test_composite_difference_alias(self):
        """Test that a difference composition accepts the 'from' key."""
        teams = {
            "dynamic_rules": [
                {
                    "name": "A",
                    "type": "composite",
                    "compose": {"difference": {"from": "eng", "subtract": ["contractors"]}},
                }
            ]
        }

        config = load_config_from_dict(self.base_config(teams))

        assert config.teams.dynamic_rules[0].compose.difference.from_team == "eng"

    def test_rule_definition_keeps_declared_fields(self):
        """Test that a rule only carries the fields it declares."""
        rule = DynamicTeamRule(name="Everyone", type="all_org_members", description="All")

        definition = rule.to_definition()

        assert definition.declares("description")
        assert not definition.declares("privacy")
        assert not definition.declares("parent")
        assert definition.members is None

    def test_definition_declares(self):
        """Test that explicit nulls count as declared."""
        definition = TeamDefinition.model_validate({"name": "A", "parent": None})

        assert definition.declares("parent")
        assert not definition.declares("description")

    def test_filter_model(self):
        """Test a filter with a single criterion."""
        assert TeamMemberFilter(emails=["a@example.com"]).emails == ["a@example.com"]


class TestFindConfigFile:
    """Test find_config_file."""

    def test_finds_file_in_parent(self, tmp_path):
        """Test searching upwards from a nested directory."""
        config_path = write_config(tmp_path, "github: {}\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == config_path.resolve()

    def test_prefers_team_sync_name(self, tmp_path):
        """Test that team-sync.yaml wins over config.yaml."""
        write_config(tmp_path, "x: 1\n", name="config.yaml")
        preferred = write_config(tmp_path, "x: 1\n", name="team-sync.yaml")

        assert find_config_file(tmp_path) == preferred.resolve()


def test_load_config_from_path(tmp_path, github_token):
    """Test the module level convenience loader."""
    config = load_config_from_path(write_config(tmp_path, VALID_CONFIG))

    assert config.organization == "acme"
