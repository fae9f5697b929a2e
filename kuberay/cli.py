"""The ``kuberay`` command line: settings, version and host information."""

from __future__ import annotations

import argparse
import enum
import itertools
import logging
import sys
from datetime import datetime
from typing import Sequence

from kuberay.cliconfig import ConfigStore, UnsupportedKeyError
from kuberay.version import get_info, get_version

_LOGGER_NAME = "kuberay"


class LogFlag(enum.IntFlag):
    """Categories of log messages that may be enabled."""

    DEPRECATED = 1
    ALWAYS = 2
    SUCCESS = 4
    CRITICAL = 8
    WARNING = 16
    INFO = 32
    DEBUG = 64
    EVERYTHING = ALWAYS | SUCCESS | CRITICAL | WARNING | INFO | DEBUG


class Prefix(str, enum.Enum):
    """The kind of a log line."""

    ALWAYS = "always"
    CRITICAL = "critical"
    INFO = "info"
    DEBUG = "debug"
    SUCCESS = "success"
    WARNING = "warning"
    DEPRECATED = "deprecated"


_GREEN = 32
_RED = 31
_CYAN = 36

_STYLES = {
    Prefix.ALWAYS: ("✿", _GREEN),
    Prefix.CRITICAL: ("✖", _RED),
    Prefix.INFO: ("ℹ", _CYAN),
    Prefix.DEBUG: ("▶", _GREEN),
    Prefix.SUCCESS: ("✔", _CYAN),
    Prefix.WARNING: ("!", _GREEN),
}
_DEFAULT_STYLE = ("ℹ", _CYAN)

_FLAG_FOR_PREFIX = {
    Prefix.ALWAYS: LogFlag.ALWAYS,
    Prefix.CRITICAL: LogFlag.CRITICAL,
    Prefix.INFO: LogFlag.INFO,
    Prefix.DEBUG: LogFlag.DEBUG,
    Prefix.SUCCESS: LogFlag.SUCCESS,
    Prefix.WARNING: LogFlag.WARNING,
    Prefix.DEPRECATED: LogFlag.DEPRECATED,
}


def log_level_mask(level: int) -> LogFlag:
    """Return the enabled message categories for a numeric log level."""
    base = LogFlag.DEPRECATED | LogFlag.ALWAYS | LogFlag.SUCCESS
    levels = {
        0: base,
        1: base | LogFlag.CRITICAL,
        2: base | LogFlag.CRITICAL | LogFlag.WARNING,
        3: base | LogFlag.CRITICAL | LogFlag.WARNING | LogFlag.INFO,
        4: base | LogFlag.CRITICAL | LogFlag.WARNING | LogFlag.INFO | LogFlag.DEBUG,
    }
    return levels.get(level, LogFlag.DEPRECATED | LogFlag.EVERYTHING)


def _timestamp(now: datetime) -> str:
    # The layout "2021-01-02 15:04:05" reads as: day, zero-padded day, month,
    # then "-MM-DD HH:MM:SS".
    return (
        f"{now.day}{now.day:02d}{now.month}-{now.month:02d}-{now.day:02d} "
        f"{now.hour:02d}:{now.minute:02d}:{now.second:02d}"
    )


def _colorize(text: str, code: int) -> str:
    return f"\x1b[{code}m{text}\x1b[0m"


def _rainbow(text: str) -> str:
    colors = itertools.cycle((31, 33, 32, 36, 34, 35))
    return "".join(
        char if char.isspace() else _colorize(char, next(colors)) for char in text
    )


def _as_prefix(prefix: Prefix | str) -> Prefix | None:
    try:
        return Prefix(prefix)
    except ValueError:
        return None


def format_log_line(
    prefix: Prefix | str,
    message: str,
    color_mode: str = "true",
    now: datetime | None = None,
) -> str:
    """Format one log line: timestamp, icon and message, ending in a newline."""
    if "\n" not in message:
        message = f"{message}\n"
    kind = _as_prefix(prefix)
    icon, color = _STYLES.get(kind, _DEFAULT_STYLE) if kind is not None else _DEFAULT_STYLE
    out = f"{_timestamp(now or datetime.now())} [{icon}]  {message}"
    if color_mode == "true":
        out = _colorize(out, color)
    return out


def _prefix_for_level(levelno: int) -> Prefix:
    if levelno >= logging.ERROR:
        return Prefix.CRITICAL
    if levelno >= logging.WARNING:
        return Prefix.WARNING
    if levelno >= logging.INFO:
        return Prefix.INFO
    return Prefix.DEBUG


class _LineHandler(logging.Handler):
    def __init__(self, mask: LogFlag, color_mode: str):
        super().__init__(logging.DEBUG)
        self.mask = mask
        self.color_mode = color_mode

    def emit(self, record: logging.LogRecord) -> None:
        prefix = _prefix_for_level(record.levelno)
        if not self.mask & _FLAG_FOR_PREFIX[prefix]:
            return
        try:
            line = format_log_line(prefix, record.getMessage(), self.color_mode)
            if self.color_mode == "fabulous":
                line = _rainbow(line)
            sys.stderr.write(line)
        except Exception:
            self.handleError(record)


def _init_logger(level: int, color_mode: str) -> None:
    logger = logging.getLogger(_LOGGER_NAME)
    for handler in [h for h in logger.handlers if isinstance(h, _LineHandler)]:
        logger.removeHandler(handler)
    logger.addHandler(_LineHandler(log_level_mask(level), color_mode))
    logger.setLevel(logging.DEBUG)
    logger.propagate = False


def _init_config(path: str) -> ConfigStore:
    if path:
        return ConfigStore(path)
    store = ConfigStore()
    try:
        store.safe_write()
    except OSError:
        pass
    return store


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the ``kuberay`` command."""
    parser = argparse.ArgumentParser(
        prog="kuberay", description="kuberay offers life cycle management of ray clusters"
    )
    parser.add_argument(
        "-l",
        "--log-level",
        type=int,
        default=3,
        help="set log level, use 0 to silence, 4 for debugging",
    )
    parser.add_argument(
        "-C",
        "--color",
        default="true",
        help="toggle colorized logs (valid options: true, false, fabulous)",
    )
    parser.add_argument(
        "--config", default="", help="config file (default is $HOME/.kuberay.yaml)"
    )
    parser.add_argument("-t", "--toggle", action="store_true", help="Help message for toggle")

    commands = parser.add_subparsers(dest="command", metavar="<command>")
    commands.add_parser("info", help="Output the version of kuberay, and OS info")
    commands.add_parser("version", help="Output the version of kuberay")

    config = commands.add_parser("config", help="Kuberay Config Management")
    config_commands = config.add_subparsers(dest="config_command", metavar="<command>")
    set_cmd = config_commands.add_parser("set", help="Set configuration in kuberay.")
    set_cmd.add_argument("key")
    set_cmd.add_argument("value")
    config_commands.add_parser("reset", help="Reset configuration in kuberay to default.")
    get_cmd = config_commands.add_parser("get", help="Get configuration in kuberay with key.")
    get_cmd.add_argument("key")
    return parser


def _run_config(args: argparse.Namespace, store: ConfigStore) -> int:
    try:
        if args.config_command == "get":
            print(store.get(args.key))
        elif args.config_command == "set":
            store.set(args.key, args.value)
        elif args.config_command == "reset":
            store.reset()
    except UnsupportedKeyError as err:
        print(err)
        return 1
    except OSError as err:
        print(err)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return its exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    store = _init_config(args.config)
    _init_logger(args.log_level, args.color)

    if args.command == "version":
        print(get_version())
        return 0
    if args.command == "info":
        info = get_info()
        print(f"KubeRay version: {info.kuberay_version}")
        print(f"OS: {info.os}")
        return 0
    if args.command == "config":
        if args.config_command is None:
            parser.parse_args(["config", "--help"])
            return 0
        return _run_config(args, store)
    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())