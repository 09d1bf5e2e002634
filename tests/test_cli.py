#!/usr/bin/env python3
"""Tests for cli.py - noun/action dispatch and exit codes."""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
import cli
from errors import ResourceNotFoundError

AZURE_ENV = {
    'AZURE_SUBSCRIPTION_ID': 'sub-1',
    'AZURE_RESOURCE_GROUP': 'rg-1',
    'AZUREML_WORKSPACE_NAME': 'ws',
    'ENV': 'dev',
}


@pytest.fixture
def azure_env(monkeypatch, tmp_path):
    for key, value in AZURE_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv('ML_DRIVER_ENV_FILE', str(tmp_path / 'state' / '.env'))


@pytest.fixture(autouse=True)
def restore_logging():
    """main() reconfigures root logging; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestUsage:
    """Test top-level usage."""

    def test_no_args_prints_usage(self, capsys):
        assert cli.main([]) == 0
        out = capsys.readouterr().out
        assert 'Usage: ml-driver <noun> <action>' in out
        assert 'service' in out

    def test_noun_without_action(self, capsys):
        assert cli.main(['service']) == 1

    def test_unknown_noun_exits(self):
        with pytest.raises(SystemExit):
            cli.main(['cluster', 'create'])

    def test_deploy_requires_service(self):
        with pytest.raises(SystemExit):
            cli.main(['service', 'deploy'])


class TestServiceList:
    """Test 'service list'."""

    def test_lists_services(self, project_file, capsys):
        assert cli.main(['service', 'list', '-P', str(project_file)]) == 0
        out = capsys.readouterr().out
        assert 'chat' in out
        assert 'flow, environment, model, endpoint, deployment' in out

    def test_missing_project_is_config_error(self, tmp_path):
        assert cli.main(['service', 'list', '-P', str(tmp_path / 'missing.yaml')]) == 1


class TestServiceDeploy:
    """Test 'service deploy'."""

    def test_dry_run(self, project_file, azure_env, capsys, tmp_path):
        """Dry run should preview phases without touching tools or Azure."""
        with patch('cli.Provisioner') as mock_provisioner:
            rc = cli.main(['service', 'deploy', '-s', 'chat', '-P', str(project_file),
                           '--dry-run', '-r', str(tmp_path / 'reports')])
        assert rc == 0
        out = capsys.readouterr().out
        assert 'DRY-RUN: deploy-service' in out
        assert 'sub-1/rg-1/ws' in out
        assert 'Nothing was changed.' in out
        mock_provisioner.return_value.ensure_workspace.assert_not_called()

    def test_unknown_service(self, project_file, azure_env):
        assert cli.main(['service', 'deploy', '-s', 'other', '-P', str(project_file)]) == 1

    def test_missing_subscription(self, project_file, azure_env, monkeypatch):
        monkeypatch.delenv('AZURE_SUBSCRIPTION_ID')
        assert cli.main(['service', 'deploy', '-s', 'chat', '-P', str(project_file)]) == 1

    def test_failed_run_exits_2_with_json(self, project_file, azure_env, capsys, tmp_path):
        """A failed scenario should exit 2 and report the failure as JSON."""
        with patch('cli.Orchestrator') as mock_orchestrator:
            instance = mock_orchestrator.return_value
            instance.run.return_value = False
            instance.report.to_dict.return_value = {'success': False, 'error': 'E401: boom'}
            rc = cli.main(['service', 'deploy', '-s', 'chat', '-P', str(project_file),
                           '--json', '--skip', 'flow', '-t', '60',
                           '-r', str(tmp_path / 'reports')])
        assert rc == 2
        assert json.loads(capsys.readouterr().out) == {'success': False, 'error': 'E401: boom'}
        kwargs = mock_orchestrator.call_args[1]
        assert kwargs['skip_phases'] == ['flow']
        assert 'timeout' not in kwargs
        assert kwargs['target'].cancel.remaining() <= 60
        assert kwargs['target'].scope.workspace_name == 'ws'

    def test_success_exits_0(self, project_file, azure_env, tmp_path):
        with patch('cli.Orchestrator') as mock_orchestrator:
            mock_orchestrator.return_value.run.return_value = True
            rc = cli.main(['service', 'deploy', '-s', 'chat', '-P', str(project_file),
                           '-r', str(tmp_path / 'reports')])
        assert rc == 0


class TestEndpointShow:
    """Test 'endpoint show'."""

    def test_prints_endpoint(self, project_file, azure_env, capsys):
        provisioner = MagicMock()
        provisioner.get_endpoint.return_value = {'name': 'chat-dev'}
        with patch('cli.Provisioner', return_value=provisioner):
            rc = cli.main(['endpoint', 'show', '-n', 'chat-${ENV}', '-s', 'chat',
                           '-P', str(project_file)])
        assert rc == 0
        assert json.loads(capsys.readouterr().out) == {'name': 'chat-dev'}
        assert provisioner.get_endpoint.call_args[0][1] == 'chat-dev'

    def test_not_found_exits_2(self, project_file, azure_env):
        provisioner = MagicMock()
        provisioner.get_endpoint.side_effect = ResourceNotFoundError(
            'endpoint not found', kind='endpoint', name='chat-dev'
        )
        with patch('cli.Provisioner', return_value=provisioner):
            rc = cli.main(['endpoint', 'show', '-n', 'chat-dev', '-s', 'chat',
                           '-P', str(project_file)])
        assert rc == 2
