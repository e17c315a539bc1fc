"""Tests for team slug derivation."""

import pytest

from teamsync.teams.slug import slugify


class TestSlugify:
    """Test slugify."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Platform", "platform"),
            ("My Team!!", "my-team"),
            ("  Core   Infra  ", "core-infra"),
            ("front--end", "front-end"),
            ("-edge-", "edge"),
            ("Data & ML", "data-ml"),
            ("team_42", "team42"),
            ("Équipe", "quipe"),
        ],
    )
    def test_known_names(self, name, expected):
        """Test slugs for representative names."""
        assert slugify(name) == expected

    def test_no_usable_characters(self):
        """Test that a name without usable characters yields an empty slug."""
        assert slugify("!!!") == ""
        assert slugify("   ") == ""

    def test_deterministic(self):
        """Test that the same name always gives the same slug."""
        assert slugify("Release Managers") == slugify("Release Managers")

    def test_case_insensitive(self):
        """Test that names differing only in case share a slug."""
        assert slugify("SRE Team") == slugify("sre team") == "sre-team"
