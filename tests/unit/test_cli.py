import json

from typer.testing import CliRunner

from admitd import cli
from conftest import create_request


runner = CliRunner()


def test_review_validate(tmp_path, failing_widget):
    review_file = tmp_path / "review.json"
    review_file.write_text(json.dumps(create_request(failing_widget, uid="cli-uid")))

    result = runner.invoke(cli.app, ["review", str(review_file)])

    assert result.exit_code == 0
    assert '"uid":"cli-uid"' in result.output
    assert '"allowed":false' in result.output


def test_review_mutate(tmp_path, passing_widget):
    review_file = tmp_path / "review.json"
    review_file.write_text(json.dumps(create_request(passing_widget)))

    result = runner.invoke(cli.app, ["review", str(review_file), "--mode", "mutate"])

    assert result.exit_code == 0
    assert '"patchType":"JSONPatch"' in result.output


def test_review_malformed_file(tmp_path):
    review_file = tmp_path / "review.json"
    review_file.write_text("not-json")

    result = runner.invoke(cli.app, ["review", str(review_file)])

    assert result.exit_code == 1


def test_serve_passes_overrides(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(cli, "run", lambda config: calls.append(config))
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"port": 9200}))

    result = runner.invoke(cli.app, ["serve", "--config-file", str(config_file), "--debug"])

    assert result.exit_code == 0
    assert calls[0].port == 9200
    assert calls[0].debug is True
