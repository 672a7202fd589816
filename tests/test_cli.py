"""Tests for the offline decoder CLI."""

import io

import pytest

from custom_components.lexman_remote.lib import cli
from custom_components.lexman_remote.lib.decoder import RemoteDecoder
from custom_components.lexman_remote.lib.protocol_const import (
    CLUSTER_COLOR_CONTROL,
    CLUSTER_MANUFACTURER,
    MODEL_GENERIC_REMOTE,
    MODEL_ZBEK_26,
    ActionId,
    get_profile,
)


def test_parse_int() -> None:
    assert cli.parse_int("0x4C") == 76
    assert cli.parse_int(" 76 ") == 76
    with pytest.raises(ValueError):
        cli.parse_int("4C")


def test_resolve_cluster_by_number_or_name() -> None:
    assert cli.resolve_cluster("0x0300") == CLUSTER_COLOR_CONTROL
    assert cli.resolve_cluster("65024") == CLUSTER_MANUFACTURER
    assert cli.resolve_cluster("color_control") == CLUSTER_COLOR_CONTROL
    with pytest.raises(ValueError):
        cli.resolve_cluster("nope")


def test_frame_subcommand(capsys) -> None:
    assert cli.main(["frame", "--command", "76", "03"]) == 0
    assert capsys.readouterr().out.strip() == f"{ActionId.BRIGHTNESS_UP} (color_control)"


def test_frame_subcommand_reports_drop_reason(capsys) -> None:
    assert cli.main(["frame", "--cluster", "0xFE00", "00", "01"]) == 0
    assert capsys.readouterr().out.strip() == "no action (malformed)"


def test_command_subcommand_variants(capsys) -> None:
    assert cli.main(["command", "--model", MODEL_ZBEK_26, "recall", "2"]) == 0
    assert cli.main(["command", "--model", MODEL_GENERIC_REMOTE, "recall", "2"]) == 0
    out = capsys.readouterr().out.split()
    assert ActionId.SCENE_2 in out
    assert ActionId.SCENE_3 in out


def test_command_subcommand_missing_argument(capsys) -> None:
    assert cli.main(["command", "step"]) == 2
    assert "needs an argument" in capsys.readouterr().err


def test_replay_uses_capture_timestamps() -> None:
    decoder = RemoteDecoder("cli", get_profile(MODEL_ZBEK_26))
    capture = [
        "# sticky green pair, then the window lapses",
        "10.0  0x0300  -   01 05 02 00",
        "11.0  0x0300  -   01 06 02 00",
        "13.5  0x0300  -   01 06 02 00",
        "14.0  0xFE00  -   00 00 00 00 00 0c",
        "garbage",
    ]
    out = io.StringIO()

    produced = cli.replay(decoder, capture, out)

    lines = out.getvalue().splitlines()
    assert produced == 4
    assert ActionId.GREEN_LEFT in lines[0]
    assert ActionId.GREEN_LEFT in lines[1]
    assert ActionId.GREEN_RIGHT in lines[2]
    assert ActionId.SCENE_3 in lines[3]
    assert lines[4].startswith("line 6:")


def test_replay_file(tmp_path, capsys) -> None:
    capture = tmp_path / "capture.txt"
    capture.write_text("0.5 0x0300 6 00\n")

    assert cli.main(["replay", str(capture)]) == 0
    out = capsys.readouterr().out
    assert ActionId.COLOR_CENTER in out
    assert "1 action(s)" in out


def test_replay_reports_bad_lines_and_continues() -> None:
    decoder = RemoteDecoder("cli", get_profile(MODEL_ZBEK_26))
    capture = [
        "1.0  NOT_A_CLUSTER  -  00",
        "2.0  0x0300  seventy  03",
        "soon  0x0300  76  03",
        "3.0  0x0300  76  zz",
        "4.0  0x0300  76  03",
    ]
    out = io.StringIO()

    produced = cli.replay(decoder, capture, out)

    lines = out.getvalue().splitlines()
    assert produced == 1
    assert [line.split(":", 1)[0] for line in lines[:4]] == ["line 1", "line 2", "line 3", "line 4"]
    assert ActionId.BRIGHTNESS_UP in lines[4]


def test_frame_subcommand_rejects_bad_input(capsys) -> None:
    assert cli.main(["frame", "--command", "76", "zz"]) == 2
    assert cli.main(["frame", "--cluster", "NOT_A_CLUSTER", "03"]) == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "unknown cluster" in captured.err


def test_shell_status_and_quit(monkeypatch, capsys) -> None:
    lines = iter(["frame 0x0300 76 00", "command on", "status", "bogus", "quit"])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(lines))

    cli.DecoderShell(RemoteDecoder("cli", get_profile(MODEL_ZBEK_26))).loop()

    out = capsys.readouterr().out
    assert ActionId.BRIGHTNESS_DOWN in out
    assert ActionId.ON in out
    assert "presses         : 2" in out
    assert "commands:" in out
