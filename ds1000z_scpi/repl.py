#!/usr/bin/env python3
"""
Interactive REPL for the Rigol DS1000Z(-E) session core.

Use to preview command plans, run them against the scope, switch MATH modes
and read back settings.
"""

import cmd
import logging
import os
import shlex
import sys
from typing import Dict, Optional

import pyvisa

from ds1000z_scpi.src.builder import MODE_DEFAULTS
from ds1000z_scpi.src.catalog import FILTER_TYPES, MEASURE_ITEMS, MathMode
from ds1000z_scpi.src.device_manager import DEFAULT_TIMEOUT_MS, VisaTransport
from ds1000z_scpi.src.errors import ScpiSessionError, TransportBusy
from ds1000z_scpi.src.readback import (
    ChannelSettings,
    context_from,
    measure,
    read_channel,
    read_math,
    read_timebase,
    read_trigger,
    settings_dict,
)
from ds1000z_scpi.src.sequencer import SessionSequencer
from ds1000z_scpi.src.terminal import ColorPrinter

DEFAULT_RESOURCE = "USB0::0x1AB1::0x0517::DS1ZE213800586::INSTR"
RESOURCE_ENV = "DS1000Z_RESOURCE"

MODE_ALIASES = {
    "basic": MathMode.BASIC_OPERATIONS,
    "fft": MathMode.FFT_ANALYSIS,
    "filter": MathMode.DIGITAL_FILTERS,
    "filters": MathMode.DIGITAL_FILTERS,
    "advanced": MathMode.ADVANCED_MATH,
    "adv": MathMode.ADVANCED_MATH,
}


class ScopeRepl(cmd.Cmd):
    intro = "DS1000Z SCPI REPL. Type 'help' for commands."
    prompt = "ds1000z> "

    def __init__(self, sequencer, mode=MathMode.BASIC_OPERATIONS, verbose=False):
        super().__init__()
        self.sequencer = sequencer
        self.mode = MathMode(mode)
        self.verbose = verbose
        self.channels: Dict[int, ChannelSettings] = {}
        self.math = None
        self.timebase = None
        self.trigger = None

    # --------------------------
    # Core helpers
    # --------------------------
    def _parse_args(self, arg):
        try:
            return shlex.split(arg)
        except ValueError as exc:
            ColorPrinter.error(f"Parse error: {exc}")
            return []

    def _is_help(self, args):
        if not args:
            return False
        return args[-1].lower() in ("help", "-h", "--help")

    def _strip_help(self, args):
        if self._is_help(args):
            return args[:-1], True
        return args, False

    def _print_usage(self, lines):
        for line in lines:
            print(line)

    def _parse_values(self, tokens):
        """key=value tokens -> dict; returns None (after printing) on a malformed token."""
        values = {}
        for token in tokens:
            key, sep, value = token.partition("=")
            if not sep or not key:
                ColorPrinter.error(f"Expected key=value, got '{token}'")
                return None
            values[key] = value
        return values

    def _context_for(self, values):
        channel = values.get("channel", 1)
        source = str(values.get("source", ""))
        if source.lower().startswith("chan"):
            channel = source[len(source.rstrip("0123456789")):]
        try:
            channel = int(channel)
        except (TypeError, ValueError):
            channel = None
        return context_from(self.timebase, self.channels.get(channel))

    def _resolve_mode(self, name) -> Optional[MathMode]:
        if name.lower() in MODE_ALIASES:
            return MODE_ALIASES[name.lower()]
        for mode in MathMode:
            if mode.value.lower() == name.lower():
                return mode
        ColorPrinter.warning(f"Unknown mode '{name}'. Use: {', '.join(MODE_ALIASES)}")
        return None

    def _on_progress(self, event):
        if self.verbose or event.status != "sent":
            print(f"  [{event.index:02d}] {event.status:<9} {event.command}")

    def _execute(self, plan):
        if not plan.steps:
            ColorPrinter.info(f"{plan.operation}: nothing to send")
            return None
        try:
            result = self.sequencer.execute(plan, on_progress=self._on_progress)
        except TransportBusy as exc:
            ColorPrinter.error(str(exc))
            return None
        ColorPrinter.result(result)
        if not result.success:
            ColorPrinter.warning("Instrument state may be partially changed; run 'refresh' before retrying.")
        return result

    # --------------------------
    # Plan commands
    # --------------------------
    def do_ops(self, arg):
        "ops [operation]: list operations, or show the parameters of one"
        args = self._parse_args(arg)
        catalog = self.sequencer.catalog
        if not args:
            for operation in catalog.operations():
                spec = catalog.get_spec(operation)
                print(f"  {ColorPrinter.CYAN}{operation.value:<24}{ColorPrinter.RESET} {spec.description}")
            return
        try:
            spec = catalog.get_spec(args[0])
        except ScpiSessionError as exc:
            ColorPrinter.error(str(exc))
            return
        print(f"{ColorPrinter.BOLD}{spec.operation}{ColorPrinter.RESET}  {spec.description}")
        for param in spec.params:
            detail = []
            if param.choices:
                detail.append("|".join(str(c) for c in param.choices))
            if param.minimum is not None or param.maximum is not None:
                detail.append(f"{param.minimum}..{param.maximum}")
            if param.default is not None:
                detail.append(f"default={param.default}")
            elif param.optional:
                detail.append("optional")
            print(f"  {ColorPrinter.CYAN}{param.name:<12}{ColorPrinter.RESET} {param.kind.value:<8} {' '.join(detail)}")
        for template in spec.templates:
            print(f"    {template}")

    def do_build(self, arg):
        "build <operation> [key=value ...]: preview the commands an operation would send"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag or not args:
            self._print_usage(
                [
                    "build <operation> [key=value ...]",
                    "  - example: build SetVerticalScale channel=1 scale=0.5",
                    "  - example: build SetDigitalFilter filter_type=BPASs w1=1000 w2=5000",
                ]
            )
            return
        values = self._parse_values(args[1:])
        if values is None:
            return
        try:
            plan = self.sequencer.builder.build(args[0], values, self._context_for(values))
        except ScpiSessionError as exc:
            ColorPrinter.error(str(exc))
            return
        ColorPrinter.plan(plan)

    def do_run(self, arg):
        "run <operation> [key=value ...]: build and send an operation"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag or not args:
            self._print_usage(
                [
                    "run <operation> [key=value ...]",
                    "  - example: run SetCoupling channel=2 coupling=AC",
                    "  - example: run ApplyFFT source=CHANnel1 window=HAMMing",
                ]
            )
            return
        values = self._parse_values(args[1:])
        if values is None:
            return
        try:
            plan = self.sequencer.builder.build(args[0], values, self._context_for(values))
        except ScpiSessionError as exc:
            ColorPrinter.error(str(exc))
            return
        self._execute(plan)

    def do_mode(self, arg):
        "mode [basic|fft|filter|advanced] [reset] [key=value ...]: switch the MATH function family"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag or not args:
            self._print_usage(
                [
                    "mode <basic|fft|filter|advanced> [reset] [key=value ...]",
                    "  - example: mode fft window=HAMMing",
                    "  - example: mode filter reset filter_type=HPASs w1=2000",
                    f"  - current: {self.mode.value}",
                ]
            )
            return
        target = self._resolve_mode(args[0])
        if target is None:
            return
        rest = args[1:]
        reset = "reset" in (a.lower() for a in rest)
        values = self._parse_values([a for a in rest if a.lower() != "reset"])
        if values is None:
            return
        try:
            plan = self.sequencer.builder.build_mode_switch(
                self.mode, target, values, reset=reset, context=context_from(self.timebase)
            )
        except ScpiSessionError as exc:
            ColorPrinter.error(str(exc))
            return
        if not plan.steps:
            ColorPrinter.info(f"Already in {target.value}")
            return
        result = self._execute(plan)
        if result is not None and result.success:
            self.mode = target

    def do_defaults(self, arg):
        "defaults: show the configuration each MATH mode is entered with"
        for mode, values in MODE_DEFAULTS.items():
            pairs = " ".join(f"{k}={v}" for k, v in values.items())
            print(f"  {ColorPrinter.CYAN}{mode.value:<16}{ColorPrinter.RESET} {pairs}")

    # --------------------------
    # Queries
    # --------------------------
    def do_query(self, arg):
        "query <name|scpi?> [channel]: query a catalog setting or a raw SCPI query"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag or not args:
            self._print_usage(
                [
                    "query <name> [channel]",
                    "query <scpi?>",
                    "  - example: query channel_scale 2",
                    "  - example: query :TIMebase:MAIN:SCALe?",
                    f"  - names: {', '.join(self.sequencer.catalog.queries())}",
                ]
            )
            return
        try:
            if "?" in args[0]:
                result = self.sequencer.query_text(" ".join(args))
            else:
                fields = {"channel": int(args[1])} if len(args) > 1 else {}
                result = self.sequencer.query_setting(args[0], **fields)
        except (ScpiSessionError, ValueError) as exc:
            ColorPrinter.error(str(exc))
            return
        if result.ok:
            ColorPrinter.cyan(result.value)
        else:
            ColorPrinter.error(f"{result.command}: {result.error}")

    def do_raw(self, arg):
        "raw <scpi>: send raw SCPI; if it contains ?, query and print"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if not args or help_flag:
            self._print_usage(
                [
                    "raw <scpi>",
                    "  - example: raw *IDN?",
                    "  - example: raw :MATH:RESet",
                ]
            )
            return
        cmd_str = " ".join(args)
        if "?" in cmd_str:
            result = self.sequencer.query_text(cmd_str)
            if result.ok:
                ColorPrinter.cyan(result.value)
            else:
                ColorPrinter.error(f"{cmd_str}: {result.error}")
            return
        try:
            result = self.sequencer.send_raw(cmd_str)
        except TransportBusy as exc:
            ColorPrinter.error(str(exc))
            return
        ColorPrinter.result(result)

    def do_refresh(self, arg):
        "refresh [channel N|math|timebase|trigger]: read settings back from the scope"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag:
            self._print_usage(
                [
                    "refresh [channel <n>|math|timebase|trigger]",
                    "  - with no argument, reads timebase, trigger, math and every channel",
                    "  - fields that fail to answer keep their previous value",
                ]
            )
            return
        what = args[0].lower() if args else "all"

        if what in ("all", "timebase"):
            readback = read_timebase(self.sequencer, self.timebase)
            self.timebase = readback.settings
            ColorPrinter.settings("Timebase", settings_dict(readback.settings), readback.failures)
        if what in ("all", "trigger"):
            readback = read_trigger(self.sequencer, self.trigger)
            self.trigger = readback.settings
            ColorPrinter.settings("Trigger", settings_dict(readback.settings), readback.failures)
        if what in ("all", "math"):
            readback = read_math(self.sequencer, self.math)
            self.math = readback.settings
            ColorPrinter.settings("Math", settings_dict(readback.settings), readback.failures)
        if what in ("all", "channel", "chan", "ch"):
            if what == "all":
                numbers = range(1, self.sequencer.catalog.channel_count + 1)
            else:
                try:
                    numbers = [int(args[1])] if len(args) > 1 else [1]
                except ValueError:
                    ColorPrinter.error(f"Channel must be a number, got '{args[1]}'")
                    return
            for n in numbers:
                try:
                    readback = read_channel(self.sequencer, n, self.channels.get(n))
                except ScpiSessionError as exc:
                    ColorPrinter.error(str(exc))
                    return
                self.channels[n] = readback.settings
                ColorPrinter.settings(f"Channel {n}", settings_dict(readback.settings), readback.failures)
        elif what not in ("all", "timebase", "trigger", "math"):
            ColorPrinter.warning(f"Unknown target '{what}'. Use channel, math, timebase or trigger.")

    def do_measure(self, arg):
        "measure <item> [source]: read one automatic measurement (VPP, FREQuency, ...)"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag or not args:
            self._print_usage(
                [
                    "measure <item> [source]",
                    f"  - items: {', '.join(MEASURE_ITEMS)}",
                    "  - source defaults to CHANnel1",
                    "  - example: measure VPP CHANnel2",
                ]
            )
            return
        source = args[1] if len(args) > 1 else "CHANnel1"
        try:
            result = measure(self.sequencer, args[0], source)
        except ScpiSessionError as exc:
            ColorPrinter.error(str(exc))
            return
        if result.ok:
            ColorPrinter.cyan(f"{args[0]} {source}: {result.value:g}")
        else:
            ColorPrinter.error(f"{result.command}: {result.error}")

    def do_range(self, arg):
        "range <filter_type> [timebase_s]: cutoff frequency limits of the MATH filter"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag or not args:
            self._print_usage(
                [
                    "range <filter_type> [timebase_s]",
                    f"  - filter_type: {'|'.join(FILTER_TYPES)}",
                    "  - timebase defaults to the last 'refresh timebase' reading",
                    "  - example: range LPASs 0.001",
                ]
            )
            return
        if len(args) > 1:
            timebase = args[1]
        elif self.timebase is not None and self.timebase.scale is not None:
            timebase = self.timebase.scale
        else:
            ColorPrinter.warning("No timebase known; pass one or run 'refresh timebase'.")
            return
        try:
            limits = self.sequencer.catalog.filter_frequency_range(timebase, args[0])
        except ScpiSessionError as exc:
            ColorPrinter.error(str(exc))
            return
        print(f"  W1 min   {limits.minimum:g} Hz")
        print(f"  W1 max   {limits.maximum:g} Hz")
        print(f"  step     {limits.step:g} Hz")
        print(f"  W2 range {limits.w2_minimum:g} .. {limits.w2_maximum:g} Hz")

    # --------------------------
    # Session
    # --------------------------
    def do_history(self, arg):
        "history [clear|save <file>]: show the commands sent this session"
        args = self._parse_args(arg)
        args, help_flag = self._strip_help(args)
        if help_flag:
            self._print_usage(["history", "history clear", "history save <file>"])
            return
        if not args:
            print(self.sequencer.format_history())
            return
        if args[0] == "clear":
            self.sequencer.clear_history()
            ColorPrinter.success("History cleared")
        elif args[0] == "save" and len(args) > 1:
            try:
                with open(args[1], "w", encoding="utf-8") as handle:
                    handle.write("\n".join(self.sequencer.history) + "\n")
            except OSError as exc:
                ColorPrinter.error(f"Failed to save history: {exc}")
                return
            ColorPrinter.success(f"Saved {len(self.sequencer.history)} entries to {args[1]}")
        else:
            ColorPrinter.warning("Usage: history [clear|save <file>]")

    def do_status(self, arg):
        "status: show transport, MATH mode and known timebase"
        print(f"  transport  {self.sequencer.transport!r}")
        print(f"  math mode  {self.mode.value}")
        scale = self.timebase.scale if self.timebase is not None else None
        print(f"  timebase   {scale if scale is not None else 'unknown'}")
        print(f"  last cmd   {self.sequencer.last_command or '-'}")

    def do_exit(self, arg):
        "exit: quit the REPL"
        return True

    def do_quit(self, arg):
        "quit: quit the REPL"
        return True

    def do_EOF(self, arg):
        print()
        return True

    def default(self, line):
        ColorPrinter.error(f"Unknown syntax: {line}")

    def emptyline(self):
        pass

    def do_help(self, arg):
        "help [command]: show help for a command, or list all commands"
        if arg:
            doc = getattr(getattr(self, f"do_{arg}", None), "__doc__", None)
            if doc:
                print(f"{ColorPrinter.CYAN}{doc.strip()}{ColorPrinter.RESET}")
            else:
                ColorPrinter.warning(f"No help for '{arg}'.")
            return

        C = ColorPrinter.CYAN
        Y = ColorPrinter.YELLOW
        B = ColorPrinter.BOLD
        R = ColorPrinter.RESET

        def section(title):
            print(f"\n{Y}{B}{title}{R}")

        def cmd_line(name, desc):
            print(f"  {C}{name:<10}{R} {desc}")

        print(f"{B}DS1000Z SCPI REPL{R}  -  type {C}help <command>{R} for details")

        section("PLANS")
        cmd_line("ops", "list operations or show one  (ops <operation>)")
        cmd_line("build", "preview commands  (build <operation> key=value ...)")
        cmd_line("run", "build and send  (run <operation> key=value ...)")
        cmd_line("mode", "switch MATH mode  (mode fft|basic|filter|advanced)")
        cmd_line("defaults", "show MATH mode default configuration")

        section("READBACK")
        cmd_line("query", "query a setting by name or raw SCPI")
        cmd_line("raw", "send raw SCPI command or query")
        cmd_line("refresh", "read channel/math/timebase/trigger settings")
        cmd_line("measure", "take an automatic measurement  (measure VPP CHANnel1)")
        cmd_line("range", "filter cutoff limits for a timebase")

        section("SESSION")
        cmd_line("history", "show, clear or save sent commands")
        cmd_line("status", "show transport and mode")
        cmd_line("exit", "quit the REPL")
        print()


def _option_value(args, flag):
    if flag in args:
        index = args.index(flag)
        if index + 1 < len(args):
            value = args[index + 1]
            del args[index:index + 2]
            return value
        del args[index]
    return None


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)

    mock = "--mock" in args
    verbose = "--verbose" in args
    args = [a for a in args if a not in ("--mock", "--verbose")]
    resource = _option_value(args, "--resource") or os.environ.get(RESOURCE_ENV, DEFAULT_RESOURCE)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if mock:
        from ds1000z_scpi import mock_instruments
        transport = mock_instruments.get_mock_transport(verbose=not args)
    else:
        transport = VisaTransport(resource, timeout_ms=DEFAULT_TIMEOUT_MS)
        try:
            transport.connect()
        except pyvisa.VisaIOError as exc:
            ColorPrinter.error(f"Could not open {resource}: {exc}")
            return 1

    repl = ScopeRepl(SessionSequencer(transport), verbose=verbose)
    try:
        if args:
            # Remaining arguments form a single command, e.g. 'ds1000z-repl --mock build ApplyFFT'
            repl.onecmd(" ".join(shlex.quote(a) for a in args))
        else:
            repl.cmdloop()
    finally:
        transport.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
