"""Tests for the command line interface."""
import json

import pytest
import yaml

from quillsmith import cli
from quillsmith.core.pipeline import ContentPipeline


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "quillsmith.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "pipeline": {
                    "custom_base_dir": "content",
                    "review_batch_pause": 0,
                    "improve_batch_pause": 0,
                }
            }
        )
    )
    return str(path)


@pytest.fixture
def fake_pipeline(monkeypatch, fake_service):
    def build(root_dir=None):
        return ContentPipeline(root_dir=root_dir, service=fake_service)

    monkeypatch.setattr(cli, "ContentPipeline", build)
    return fake_service


async def run_cli(capsys, *argv):
    code = await cli.main(list(argv))
    return code, json.loads(capsys.readouterr().out)


class TestCommands:

    @pytest.mark.asyncio
    async def test_workflow_then_status(self, content_root, config_file, fake_pipeline, capsys):
        base = ["--root", str(content_root), "--config", config_file, "--collection", "custom"]

        code, payload = await run_cli(capsys, *base, "workflow", "--improve-count", "1")
        assert code == 0
        assert len(payload["discovered"]) == 3
        assert payload["improvement"]["summary"]["succeeded"] == 1

        code, status = await run_cli(capsys, *base, "status")
        assert code == 0
        assert status["totalFiles"] == 3
        assert status["meetsTargets"] == 2
        assert fake_pipeline.closed

    @pytest.mark.asyncio
    async def test_review_failure_sets_exit_code(self, content_root, config_file, fake_pipeline, capsys):
        base = ["--root", str(content_root), "--config", config_file, "--collection", "custom"]
        await run_cli(capsys, *base, "discover")

        code, payload = await run_cli(capsys, *base, "review", "content/missing.md")

        assert code == 1
        assert payload["summary"]["failed"] == 1

    @pytest.mark.asyncio
    async def test_costs_for_one_document(self, content_root, config_file, fake_pipeline, capsys):
        base = ["--root", str(content_root), "--config", config_file, "--collection", "custom"]
        await run_cli(capsys, *base, "discover")
        await run_cli(capsys, *base, "review")

        code, payload = await run_cli(capsys, *base, "costs", "--path", "content/alpha.md")

        assert code == 0
        assert list(payload["costsByContent"]) == [str((content_root / "content" / "alpha.md").resolve())]

    @pytest.mark.asyncio
    async def test_domain_error_is_reported_as_json(self, tmp_path, fake_pipeline, capsys):
        code, payload = await run_cli(capsys, "--root", str(tmp_path), "--collection", "nextjs", "discover")

        assert code == 1
        assert payload["error"]["code"] == "SCAN_ERROR"

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    @pytest.mark.asyncio
    async def test_invalid_config_file(self, tmp_path, fake_pipeline, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("pipeline: [unclosed\n")

        code, payload = await run_cli(capsys, "--root", str(tmp_path), "--config", str(bad), "status")

        assert code == 2
        assert payload["error"]["code"] == "CONFIGERROR"
