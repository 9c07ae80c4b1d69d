from __future__ import annotations

from pathlib import Path

import yaml

from apps.run_plugin import main


def _write_config(tmp_path: Path) -> Path:
    plugins_dir = tmp_path / "plugins"
    plugins_dir.mkdir()
    (plugins_dir / "shout.py").write_text("def main(x):\n    return x.upper()\n", encoding="utf-8")
    (plugins_dir / "fails.py").write_text("def main(x):\n    return 1 / 0\n", encoding="utf-8")
    config_path = tmp_path / "textutil.yaml"
    config_path.write_text(
        yaml.safe_dump({"plugins": {"directory": "plugins"}}), encoding="utf-8"
    )
    return config_path


def test_run_plugin_writes_result_to_stdout(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path)
    input_path = tmp_path / "buffer.txt"
    input_path.write_text("quiet please", encoding="utf-8")

    code = main(["SHOUT", "--config", str(config_path), "--input", str(input_path)])

    assert code == 0
    assert capsys.readouterr().out == "QUIET PLEASE"


def test_failed_plugin_reports_on_stderr(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path)
    input_path = tmp_path / "buffer.txt"
    input_path.write_text("x", encoding="utf-8")

    code = main(["fails", "--config", str(config_path), "--input", str(input_path)])

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    assert captured.err.startswith("runtime error: ZeroDivisionError")


def test_list_prints_registered_plugins(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path)

    code = main(["--list", "--config", str(config_path)])

    assert code == 0
    assert capsys.readouterr().out.split() == ["fails", "shout"]


def test_bad_override_is_config_error(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path)

    code = main(["shout", "--config", str(config_path), "--set", "runtime.timeout_s=-1"])

    assert code == 2
    assert "config error" in capsys.readouterr().err


def test_missing_plugin_name_is_usage_error(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path)

    code = main(["--config", str(config_path)])

    assert code == 2
    assert "plugin name is required" in capsys.readouterr().err


def test_unreadable_input_is_reported(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path)
    binary_path = tmp_path / "binary.txt"
    binary_path.write_bytes(b"\xff\xfe\xfa")

    missing = main(["shout", "--config", str(config_path), "--input", str(tmp_path / "nope.txt")])
    missing_err = capsys.readouterr().err
    undecodable = main(["shout", "--config", str(config_path), "--input", str(binary_path)])
    undecodable_err = capsys.readouterr().err

    assert missing == 2
    assert missing_err.startswith("input error: cannot read")
    assert undecodable == 2
    assert undecodable_err.startswith("input error: cannot read")
