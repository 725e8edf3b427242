"""Tests for the command line entry point."""

import json

import pytest

import cli
from conftest import APACHE_LINE, NGINX_LINE


def test_json_output(tmp_path, capsys):
    log_file = tmp_path / "access.log"
    log_file.write_text(f"{APACHE_LINE}\n{NGINX_LINE}\nbroken line\n")

    code = cli.main([str(log_file), "--log-type", "nginx", "--workers", "2", "--json"])

    assert code == 0
    body = json.loads(capsys.readouterr().out)
    assert body["summary"]["total_requests"] == 2
    assert body["summary"]["avg_response_time"] == 0.045
    assert body["processing"]["nginx_count"] == 2
    assert body["processing"]["error_count"] == 1
    assert body["errors"][0]["line_number"] == 3


def test_text_output(tmp_path, capsys):
    log_file = tmp_path / "access.log"
    log_file.write_text(APACHE_LINE + "\n")

    assert cli.main([str(log_file)]) == 0

    out = capsys.readouterr().out
    assert "Total requests:    1" in out
    assert "/api/users" in out
    assert "13:00  1" in out


def test_missing_file(tmp_path, capsys):
    assert cli.main([str(tmp_path / "nope.log")]) == 1
    assert "error:" in capsys.readouterr().err


def test_zero_workers_is_a_usage_error(tmp_path, capsys):
    log_file = tmp_path / "access.log"
    log_file.write_text(APACHE_LINE + "\n")

    with pytest.raises(SystemExit) as exc:
        cli.main([str(log_file), "--workers", "0"])

    assert exc.value.code == 2
    assert "--workers" in capsys.readouterr().err
