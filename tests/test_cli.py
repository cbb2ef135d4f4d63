from unittest.mock import Mock

import pytest

from ragengine.config.settings import Settings
from ragengine.presentation import cli

from conftest import REFUND_POLICY, build_engine


class TestCmdAsk:

    @pytest.fixture
    def docs(self, tmp_path, monkeypatch):
        (tmp_path / "refunds.txt").write_text(REFUND_POLICY, encoding="utf-8")
        (tmp_path / "photo.png").write_bytes(b"\x89PNG....")
        monkeypatch.setattr(cli.settings, "docs_path", str(tmp_path))
        return tmp_path

    async def test_prints_answer_and_sources(self, docs, capsys):
        engine = build_engine()

        await cli.cmd_ask(engine, "What is the refund window?")

        out = capsys.readouterr().out
        assert "30 days" in out
        assert "Sources: refunds.txt\n" in out
        assert engine.stats().document_count == 1

    async def test_no_information_has_no_sources_line(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(cli.settings, "docs_path", str(tmp_path / "missing"))

        await cli.cmd_ask(build_engine(), "What is the refund window?")

        assert "Sources:" not in capsys.readouterr().out


class TestEnsureOllamaModel:

    def test_waits_between_failed_checks(self, monkeypatch):
        sleep = Mock()
        monkeypatch.setattr(cli.time, "sleep", sleep)
        monkeypatch.setattr(cli.httpx, "get", Mock(return_value=Mock(status_code=500)))

        assert not cli.ensure_ollama_model(Settings(llm_model="qwen2.5:7b"))
        assert sleep.call_count == 30

    def test_model_already_present(self, monkeypatch):
        sleep = Mock()
        tags = Mock(status_code=200)
        tags.json.return_value = {"models": [{"name": "qwen2.5:7b"}]}
        monkeypatch.setattr(cli.time, "sleep", sleep)
        monkeypatch.setattr(cli.httpx, "get", Mock(return_value=tags))

        assert cli.ensure_ollama_model(Settings(llm_model="qwen2.5:7b"))
        sleep.assert_not_called()
