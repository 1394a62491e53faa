"""
Tests for the ORDEX command-line interface
"""

import json

import pytest
from click.testing import CliRunner

from ordex.cli import cli
from ordex.config import OrdexConfig


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Configuration pointing at a throwaway SQLite database, AI matching off"""
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.setenv('GEMINI_API_KEY', 'test-key')
    monkeypatch.setenv('OPENAI_API_KEY', 'test-key')
    monkeypatch.delenv('ORDEX_DATABASE_URL', raising=False)
    OrdexConfig.reset()

    path = tmp_path / 'ordex.yaml'
    path.write_text(
        f"database:\n  url: sqlite:///{tmp_path / 'ordex.db'}\n"
        "matching:\n  provider: null\n"
    )
    yield str(path)
    OrdexConfig.reset()


class TestClassifyCommand:
    """Tests for the classify command"""

    def test_classify_text(self, config_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['--config', config_file, 'classify', '--text', 'hola, buenos días'])

        assert result.exit_code == 0, result.output
        output = json.loads(result.output)
        assert output['primary']['type'] == 'general_text'
        assert output['primary']['processor'] == 'text'
        assert output['channel'] == 'api'
        assert output['priority'] == 9
        assert output['processable'] is True

    def test_classify_pdf_file(self, config_file, tmp_path):
        pdf = tmp_path / 'pedido.pdf'
        pdf.write_bytes(b'%PDF-1.4')

        result = CliRunner().invoke(cli, ['--config', config_file, 'classify', '--file', str(pdf),
                                          '--channel', 'telegram'])

        assert result.exit_code == 0, result.output
        output = json.loads(result.output)
        assert output['primary']['type'] == 'pdf'
        assert output['primary']['processor'] == 'vision'
        assert output['channel'] == 'telegram'

    def test_classify_requires_input(self, config_file):
        result = CliRunner().invoke(cli, ['--config', config_file, 'classify'])

        assert result.exit_code != 0
        assert 'Provide at least one of' in result.output


class TestRegistryCommands:
    """Tests for registry maintenance and resolution"""

    def test_entry_alias_and_resolve(self, config_file):
        runner = CliRunner()
        base = ['--config', config_file]

        result = runner.invoke(cli, base + ['init'])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, base + ['add-entry', 'product', 'ace01', '--name', 'Aceite de oliva'])
        assert result.exit_code == 0, result.output
        assert 'Added: product ACE01' in result.output

        result = runner.invoke(cli, base + ['add-alias', 'product', 'Aceite Oliva', 'ACE01'])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, base + ['resolve', 'product', 'aceite oliva'])
        assert result.exit_code == 0, result.output
        output = json.loads(result.output)
        assert output == {'code': 'ACE01', 'status': 'alias', 'confidence': 1.0}

    def test_alias_for_unknown_code(self, config_file):
        runner = CliRunner()
        base = ['--config', config_file]

        result = runner.invoke(cli, base + ['add-alias', 'client', 'bar pepe', 'NOPE'])

        assert result.exit_code == 1
        assert 'Unknown client code' in result.output
