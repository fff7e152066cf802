#!/usr/bin/env python3
"""4719 Emulator Command Line Interface.

Assemble and run programs for the 4719 4-bit processor.

Usage:
    python main.py --program programs/lecture3.asm
    python main.py --inline "bell; halt" --mode stepped
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from emu4719 import AssemblerError, Memory, Processor, ProcessorState, RunMode, disassemble


MODES = {
    "go": RunMode.GO,
    "stepped": RunMode.STEPPED,
    "timed": RunMode.TIMED,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="4719: Emulator for a fictional 4-bit processor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run the lecture 3 demo as fast as possible
    python main.py --program programs/lecture3.asm

    # Same program, full trace of the last cycles
    python main.py --program programs/lecture3.asm --trace

    # One cycle per Enter key
    python main.py --program programs/lecture3.asm --mode stepped

    # Inline assembly, half a second between cycles
    python main.py --inline "prn 10; bell; halt" --mode timed --delay 500
        """
    )

    parser.add_argument(
        "--program", "-p",
        type=str,
        help="Path to assembly program file (.asm)"
    )
    parser.add_argument(
        "--inline", "-i",
        type=str,
        help="Inline assembly (separate lines with ;)"
    )
    parser.add_argument(
        "--mode", "-m",
        choices=sorted(MODES),
        default="go",
        help="Run mode: go (back-to-back), stepped (Enter per cycle) or timed. Default: go"
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=Processor.DEFAULT_DELAY_MS,
        help=f"Milliseconds between cycles in timed mode. Default: {Processor.DEFAULT_DELAY_MS}"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=10000,
        help="Cycle budget in go mode (0 for unlimited). Default: 10000"
    )
    parser.add_argument(
        "--history-limit",
        type=int,
        default=Processor.DEFAULT_HISTORY_LIMIT,
        help=f"Snapshots kept for the trace. Default: {Processor.DEFAULT_HISTORY_LIMIT}"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print the execution trace"
    )
    parser.add_argument(
        "--disassemble", "-d",
        action="store_true",
        help="Print the assembled program listing before running"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (printed bytes only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every cycle"
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.program and not args.inline:
        parser.error("Either --program or --inline is required")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.program:
        program_path = Path(args.program)
        if not program_path.exists():
            print(f"Error: Program file not found: {args.program}")
            return 1
        source = program_path.read_text()
        if not args.quiet:
            print(f"Loading program: {args.program}")
    else:
        source = args.inline.replace(";", "\n")
        if not args.quiet:
            print("Running inline assembly")

    def print_byte(byte: int) -> None:
        print(byte if args.quiet else f"OUT {byte}")

    cpu = Processor(
        memory=Memory(),
        print_handler=print_byte,
        run_mode=MODES[args.mode],
        delay=args.delay,
        history_limit=args.history_limit,
        max_cycles=args.max_cycles or None,
    )

    try:
        program = cpu.load_source(source)
    except AssemblerError as e:
        print(f"Assembly error: {e}")
        return 1
    except ValueError as e:
        print(f"Load error: {e}")
        return 1

    if args.disassemble:
        for line in disassemble(program):
            print(line)

    if not args.quiet:
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    try:
        cpu.run()
        if cpu.run_mode is RunMode.STEPPED:
            while cpu.is_running:
                reply = input(f"[{cpu.registers}] Enter to step, q to quit: ")
                if reply.strip().lower() == "q":
                    cpu.stop()
                    break
                cpu.step()
        elif cpu.run_mode is RunMode.TIMED:
            while cpu.is_running:
                time.sleep(0.05)
    except (KeyboardInterrupt, EOFError):
        cpu.stop()

    if args.trace:
        cpu.print_trace()
    elif not args.quiet:
        summary = cpu.get_summary()
        print()
        print(f"State: {summary['state']}")
        print(f"Cycles: {summary['cycles']}")
        print(f"Registers: {summary['registers']}")
        print(f"Output: {summary['output']}")

    return 0 if cpu.state is ProcessorState.HALTED else 1


if __name__ == "__main__":
    sys.exit(main())
