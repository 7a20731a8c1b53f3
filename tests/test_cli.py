import runpy
from pathlib import Path

import pytest
from click.testing import CliRunner

from restsarsa import agent as agent_module
from restsarsa.cli import cli

from conftest import StubClient


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(agent_module, 'ServiceClient', lambda *args, **kwargs: StubClient())
    return CliRunner()


def test_actions_lists_action_space(runner):
    result = runner.invoke(cli, ['actions'])
    assert result.exit_code == 0
    assert 'EXPLORE_GET_ALL' in result.output
    assert 'EXECUTE' in result.output
    assert result.output.count('[requires id]') == 4


def test_train_and_evaluate(runner, tmp_path):
    model = tmp_path / "model.npz"
    result = runner.invoke(cli, ['train', '--episodes', '2', '--step-limit', '5',
                                 '--log-every', '1', '--save-model', str(model)])
    assert result.exit_code == 0, result.output
    assert 'Training Summary' in result.output
    assert model.exists()

    result = runner.invoke(cli, ['evaluate', '--model', str(model), '--episodes', '2'])
    assert result.exit_code == 0, result.output
    assert 'Evaluation Summary' in result.output


def test_train_with_config_file(runner, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("episodes: 1\nstep_limit: 3\n")
    result = runner.invoke(cli, ['train', '--config', str(config)])
    assert result.exit_code == 0, result.output
    assert 'Episodes: 1 x 3 steps' in result.output


def test_invalid_option_fails(runner):
    result = runner.invoke(cli, ['train', '--episodes', '1', '--epsilon', '2.0'])
    assert result.exit_code == 1
    assert 'Training failed' in result.output


def test_main_script_runs_cli_group():
    namespace = runpy.run_path(str(Path(__file__).resolve().parents[1] / 'main.py'),
                               run_name='main')
    assert namespace['cli'] is cli
