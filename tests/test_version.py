"""Tests for resolver/version.py - version resolution."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
from errors import ControlPlaneError, ResourceNotFoundError
from resolver.version import FIRST_VERSION, VersionContainer, VersionResolver


class TestVersionContainer:
    """Test container record parsing."""

    def test_from_record(self):
        """Should read nextVersion and latestVersion as strings."""
        record = {'name': 'env-dev', 'properties': {'nextVersion': 4, 'latestVersion': '3'}}
        container = VersionContainer.from_record(record)
        assert container == VersionContainer('env-dev', '4', '3')

    def test_missing_properties(self):
        """Should leave versions unset when absent."""
        container = VersionContainer.from_record({'name': 'm'})
        assert container.next_version is None
        assert container.latest_version is None


class TestNextVersion:
    """Test next-version resolution."""

    def test_no_container_starts_at_one(self, control_plane):
        """Should return '1' when the container does not exist."""
        resolver = VersionResolver(control_plane, 'environment')
        assert resolver.next_version('env-dev') == FIRST_VERSION == '1'

    def test_returns_next_version_verbatim(self, control_plane):
        """Should return the control plane's nextVersion unchanged."""
        control_plane.records[('environment', 'env-dev')] = {
            'name': 'env-dev', 'properties': {'nextVersion': '4', 'latestVersion': '3'},
        }
        resolver = VersionResolver(control_plane, 'environment')
        assert resolver.next_version('env-dev') == '4'

    def test_other_errors_propagate(self):
        """Should not treat a failed read as 'no container'."""
        client = MagicMock()
        client.get_environment_container.side_effect = ControlPlaneError('HTTP 500', status=500)
        resolver = VersionResolver(client, 'environment')
        with pytest.raises(ControlPlaneError):
            resolver.next_version('env-dev')

    def test_model_uses_model_container(self):
        """Should read the model container for kind 'model'."""
        client = MagicMock()
        client.get_model_container.return_value = {'name': 'm', 'properties': {'nextVersion': '7'}}
        assert VersionResolver(client, 'model').next_version('m') == '7'
        client.get_environment_container.assert_not_called()


class TestLatestVersion:
    """Test latest-version resolution."""

    def test_returns_latest(self, control_plane):
        control_plane.records[('model', 'model-dev')] = {
            'name': 'model-dev', 'properties': {'latestVersion': '12'},
        }
        assert VersionResolver(control_plane, 'model').latest_version('model-dev') == '12'

    def test_missing_container_raises(self, control_plane):
        """Latest version requires the container to exist."""
        with pytest.raises(ResourceNotFoundError):
            VersionResolver(control_plane, 'model').latest_version('model-dev')


class TestResolverKind:
    """Test resolver construction."""

    def test_rejects_unversioned_kind(self, control_plane):
        with pytest.raises(ValueError, match='endpoint'):
            VersionResolver(control_plane, 'endpoint')
