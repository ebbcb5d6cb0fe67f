#!/usr/bin/env python3
"""CLI Smoke Tests - "Does it still work?" tests

These tests detect when the app is fundamentally broken:
- Import errors
- Config file corruption
- Basic CLI functionality

NOT testing edge cases or complex logic - just "can the app start?"
"""

import json

from click.testing import CliRunner


class TestCLIImports:
    """Test that core CLI components can be imported without crashing."""

    def test_app_hooks_import(self):
        from voicenote_stt.app_hooks import on_download, on_models, on_status, on_transcribe

        assert callable(on_status)
        assert callable(on_models)
        assert callable(on_download)
        assert callable(on_transcribe)

    def test_lazy_package_exports(self):
        import voicenote_stt

        assert voicenote_stt.STTService.__name__ == "STTService"
        assert voicenote_stt.ProviderIdentity.VOSK.value == "vosk"
        assert isinstance(voicenote_stt.__version__, str)


class TestCLICommands:
    def test_help(self):
        from voicenote_stt.cli import main

        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "transcribe" in result.output

    def test_status_json(self, tmp_path):
        from voicenote_stt.cli import main

        config_path = tmp_path / "config.toml"
        config_path.write_text('[stt]\nprovider = "cloud"\n')

        result = CliRunner().invoke(main, ["--config", str(config_path), "status", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["provider"] == "whisper"
        assert data["openai_api_key_set"] is False
        assert set(data["providers"]) == {"vosk", "whisper"}

    def test_transcribe_without_credential_fails(self, tmp_path, make_wav):
        from voicenote_stt.cli import main

        wav = make_wav(100)
        result = CliRunner().invoke(main, ["--config", str(tmp_path / "none.toml"), "transcribe", str(wav), "--provider", "whisper", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["status"] == "error"
