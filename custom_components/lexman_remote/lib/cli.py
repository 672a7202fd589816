#!/usr/bin/env python3
"""
cli.py – offline decoder for Lexman / ADEO remote frames

- decode a single raw frame:       frame --model ZBEK-26 --cluster 0x0300 --command 76 03
- normalise a cluster command:     command --model generic-remote recall 2
- replay a capture with timings:   replay --model ZBEK-26 capture.txt
- poke at one decoder interactively: shell --model ZBEK-26

Replay files hold one frame per line: ``<seconds> <cluster> <command|-> <hex>``.
The seconds column is used as the monotonic receive time, so the recency
window behaves exactly as it would live.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Optional, TextIO

from .decoder import RemoteDecoder
from .frames import CanonicalAction, RawFrame
from .protocol_const import (
    CLUSTER_COLOR_CONTROL,
    CLUSTER_MANUFACTURER,
    CLUSTERNAMES,
    DEFAULT_ENDPOINT_ID,
    MODELS,
    get_profile,
)

# ----------------- helpers -----------------


def parse_int(s: str) -> int:
    """Parse decimal or 0x..."""
    s = s.strip()
    if s.lower().startswith("0x"):
        return int(s, 16)
    return int(s, 10)


def resolve_cluster(code_or_name: str) -> int:
    """Accept numeric (0x0300, 768) or a cluster name (COLOR_CONTROL)."""
    try:
        return parse_int(code_or_name)
    except ValueError:
        pass
    upper = code_or_name.upper()
    for code, name in CLUSTERNAMES.items():
        if name == upper:
            return code
    raise ValueError(f"unknown cluster {code_or_name!r}")


# short name → (decoder command, argument name)
CLI_COMMANDS = {
    "on": ("set_on", None),
    "off": ("set_off", None),
    "step": ("step", "step_mode"),
    "recall": ("recall_scene", "scene_id"),
    "hue": ("move_to_hue", "hue"),
    "saturation": ("move_to_saturation", "saturation"),
}


def _describe(action: Optional[CanonicalAction], decoder: RemoteDecoder, before: dict) -> str:
    if action is not None:
        return f"{action.action_id} ({action.source_path})"
    changed = [k for k, v in decoder.stats.items() if v != before.get(k, 0)]
    return f"no action ({', '.join(changed) or 'ignored'})"


def decode_frame(
    decoder: RemoteDecoder,
    cluster: int,
    payload_hex: str,
    *,
    command_id: Optional[int] = None,
    endpoint_id: int = DEFAULT_ENDPOINT_ID,
    received_at: Optional[float] = None,
) -> str:
    frame = RawFrame.from_hex(
        cluster,
        payload_hex,
        endpoint_id=endpoint_id,
        command_id=command_id,
        received_at=received_at,
    )
    before = dict(decoder.stats)
    return _describe(decoder.handle_frame(frame), decoder, before)


def run_command(decoder: RemoteDecoder, name: str, arg: Optional[str] = None) -> str:
    if name not in CLI_COMMANDS:
        raise ValueError(f"unknown command {name!r}; expected one of {', '.join(CLI_COMMANDS)}")
    command, arg_name = CLI_COMMANDS[name]
    kwargs = {}
    if arg_name is not None:
        if arg is None:
            raise ValueError(f"{name} needs an argument")
        kwargs[arg_name] = parse_int(arg)
    before = dict(decoder.stats)
    return _describe(decoder.handle_command(command, **kwargs), decoder, before)


def replay(decoder: RemoteDecoder, lines: Iterable[str], out: Optional[TextIO] = None) -> int:
    """Decode every frame line in order; return how many produced an action."""

    out = out or sys.stdout
    produced = 0
    for lineno, line in enumerate(lines, 1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.split()
        if len(parts) < 4:
            print(f"line {lineno}: expected '<seconds> <cluster> <command|-> <hex>'", file=out)
            continue
        seconds, cluster, command, payload = parts[0], parts[1], parts[2], "".join(parts[3:])
        try:
            received_at = float(seconds)
            result = decode_frame(
                decoder,
                resolve_cluster(cluster),
                payload,
                command_id=None if command == "-" else parse_int(command),
                received_at=received_at,
            )
        except ValueError as err:
            print(f"line {lineno}: {err}", file=out)
            continue
        if not result.startswith("no action"):
            produced += 1
        print(f"{received_at:9.3f}  {payload:<16} {result}", file=out)
    return produced


# ----------------- CLI -----------------


class DecoderShell:
    """
    Very simple REPL around a single decoder, so recency behaviour can be
    tried by hand.
    """

    prompt = "lexman> "

    def __init__(self, decoder: RemoteDecoder):
        self.d = decoder
        self._stop = False

    def do_frame(self, args: str) -> None:
        """
        frame <cluster> <command|-> <hex>

        examples:
          frame 0x0300 76 03
          frame 0xFE00 - 0000000000 0a 01
        """
        parts = args.split()
        if len(parts) < 3:
            print(self.do_frame.__doc__)
            return
        command = None if parts[1] == "-" else parse_int(parts[1])
        print(decode_frame(self.d, resolve_cluster(parts[0]), "".join(parts[2:]), command_id=command))

    def do_command(self, args: str) -> None:
        parts = args.split()
        if not parts:
            print(f"usage: command <{'|'.join(CLI_COMMANDS)}> [arg]")
            return
        try:
            print(run_command(self.d, parts[0], parts[1] if len(parts) > 1 else None))
        except ValueError as err:
            print(err)

    def do_status(self, _args: str) -> None:
        snap = self.d.snapshot()
        print("== status ==")
        print(f"model           : {snap['model']}")
        print(f"frame clusters  : {', '.join(snap['frame_clusters']) or '-'}")
        print(f"command clusters: {', '.join(snap['command_clusters']) or '-'}")
        print(f"recency window  : {snap['recency_window_ms']} ms")
        print(f"presses         : {snap['press_count']}")
        for key, value in sorted(snap["stats"].items()):
            print(f"  {key:<16}: {value}")
        for param, entry in snap["recency_cache"].items():
            print(f"  cache {param}: {entry['state']} {entry['action'] or ''}")

    def do_reset(self, _args: str) -> None:
        self.d.reset()
        print("recency cache cleared")

    def do_quit(self, _args: str) -> None:
        self._stop = True

    def do_exit(self, _args: str) -> None:
        self._stop = True

    # ----- REPL loop -----

    def loop(self) -> None:
        while not self._stop:
            try:
                line = input(self.prompt)
            except EOFError:
                break
            line = line.strip()
            if not line:
                continue
            cmd, *rest = line.split(" ", 1)
            rest = rest[0] if rest else ""
            meth = getattr(self, f"do_{cmd}", None)
            if not meth:
                print("commands: frame, command, status, reset, quit")
                continue
            try:
                meth(rest)
            except ValueError as err:
                print(f"error: {err}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Lexman remote frame decoder")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = ap.add_subparsers(dest="mode", required=True)

    def _model(p: argparse.ArgumentParser) -> None:
        p.add_argument("--model", choices=MODELS, default=MODELS[0])
        p.add_argument("--window-ms", type=int, default=None, help="override the recency window")

    p_frame = sub.add_parser("frame", help="decode one raw frame")
    _model(p_frame)
    p_frame.add_argument("--cluster", default=f"0x{CLUSTER_COLOR_CONTROL:04X}")
    p_frame.add_argument("--endpoint", type=parse_int, default=DEFAULT_ENDPOINT_ID)
    p_frame.add_argument("--command", type=parse_int, default=None)
    p_frame.add_argument("payload", nargs="+", help="payload bytes as hex")

    p_cmd = sub.add_parser("command", help="normalise one cluster command")
    _model(p_cmd)
    p_cmd.add_argument("name", choices=tuple(CLI_COMMANDS))
    p_cmd.add_argument("arg", nargs="?")

    p_replay = sub.add_parser("replay", help="decode a capture file in order")
    _model(p_replay)
    p_replay.add_argument("file", type=argparse.FileType("r"))

    p_shell = sub.add_parser("shell", help="interactive decoder")
    _model(p_shell)

    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    decoder = RemoteDecoder("cli", get_profile(args.model))
    if args.window_ms is not None:
        decoder.set_recency_window(args.window_ms)

    if args.mode == "frame":
        try:
            print(
                decode_frame(
                    decoder,
                    resolve_cluster(args.cluster),
                    "".join(args.payload),
                    command_id=args.command,
                    endpoint_id=args.endpoint,
                )
            )
        except ValueError as err:
            print(err, file=sys.stderr)
            return 2
        return 0

    if args.mode == "command":
        try:
            print(run_command(decoder, args.name, args.arg))
        except ValueError as err:
            print(err, file=sys.stderr)
            return 2
        return 0

    if args.mode == "replay":
        with args.file as fh:
            produced = replay(decoder, fh)
        print(f"{produced} action(s), stats: {dict(decoder.stats)}")
        return 0

    print(f"decoder for {args.model} ready; vendor cluster is 0x{CLUSTER_MANUFACTURER:04X}; type 'status'")
    DecoderShell(decoder).loop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
