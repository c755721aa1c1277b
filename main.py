#!/usr/bin/env python3
"""chip8-vm Command Line Interface.

Run CHIP-8 programs headless and print the resulting screen.

Usage:
    python main.py --rom roms/ibm_logo.ch8 --frames 60
    python main.py --hex "6005 6103 8014 00E0 1208" --trace
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from chip8_vm import Chip8Error, EmulatorConfig, Interpreter
from chip8_vm.config import QUIRK_PRESETS
from chip8_vm.display import render_text


def parse_hex_program(text: str) -> bytes:
    """Turn whitespace/comma separated 16-bit hex words into a program image."""
    words = text.replace(",", " ").split()
    return b"".join(int(word, 16).to_bytes(2, "big") for word in words)


def parse_keys(text: str) -> list:
    return [int(k, 16) for k in text.replace(",", " ").split()]


def main():
    parser = argparse.ArgumentParser(
        description="chip8-vm: CHIP-8 Virtual Machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a ROM for one second of emulated time
    python main.py --rom roms/ibm_logo.ch8 --frames 60

    # Run with SUPER-CHIP variant semantics
    python main.py --rom roms/test.ch8 --quirks superchip

    # Run inline machine code with full trace output
    python main.py --hex "A000 6000 6100 D015 1208" --trace

    # Hold keys 5 and A down for the whole run
    python main.py --rom roms/game.ch8 --keys 5,A
        """
    )

    parser.add_argument(
        "--rom", "-r",
        type=str,
        help="Path to program image"
    )
    parser.add_argument(
        "--hex", "-x",
        type=str,
        help="Inline program as 16-bit hex words (e.g. \"6005 1200\")"
    )
    parser.add_argument(
        "--quirks", "-q",
        choices=sorted(QUIRK_PRESETS),
        default="chip8",
        help="Variant semantics preset. Default: chip8"
    )
    parser.add_argument(
        "--frames", "-f",
        type=int,
        default=60,
        help="Number of 60 Hz frames to run. Default: 60"
    )
    parser.add_argument(
        "--clock-rate",
        type=int,
        default=750,
        help="Instructions per second. Default: 750"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the random number source (reproducible runs)"
    )
    parser.add_argument(
        "--keys", "-k",
        type=str,
        default="",
        help="Hex keys held down during the run (e.g. 5,A)"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print the screen"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level. Default: WARNING"
    )

    args = parser.parse_args()

    if not args.rom and not args.hex:
        parser.error("Either --rom or --hex is required")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = EmulatorConfig(clock_rate=args.clock_rate)
    except ValueError as e:
        parser.error(str(e))

    cpu = Interpreter(
        quirks=QUIRK_PRESETS[args.quirks](),
        config=config,
        seed=args.seed,
        trace=args.trace,
    )

    try:
        if args.rom:
            rom_path = Path(args.rom)
            if not rom_path.exists():
                print(f"Error: ROM file not found: {args.rom}")
                return 1
            cpu.load_rom_file(rom_path)
            if not args.quiet:
                print(f"Loading ROM: {args.rom}")
        else:
            cpu.load_rom(parse_hex_program(args.hex))
            if not args.quiet:
                print("Running inline program")
        cpu.set_keys(parse_keys(args.keys))
    except (Chip8Error, ValueError) as e:
        print(f"Error: {e}")
        return 1

    exit_code = 0
    try:
        for _ in range(args.frames):
            cpu.run_frame()
    except Chip8Error as e:
        print(f"Execution error: {e}")
        exit_code = 1

    if args.trace:
        cpu.print_trace()

    print(render_text(cpu.state, border=True))

    if not args.quiet:
        summary = cpu.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"State: {summary['run_state']}")
        print(f"PC: {summary['pc']:03X}  I: {summary['index']:03X}  "
              f"Stack depth: {summary['stack_depth']}")
        print(f"Registers: {summary['registers']}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
