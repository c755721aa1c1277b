"""chip8-vm Interactive Demo.

A Gradio web interface for running CHIP-8 programs and viewing the screen.

Usage:
    cd /path/to/chip8-vm
    python demo/gradio_app.py

Features:
    - Upload a ROM or pick a bundled example program
    - Choose variant semantics and how many frames to run
    - Hold keypad keys down during the run
    - See the final screen, registers and execution trace
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from chip8_vm import Chip8Error, Interpreter
from chip8_vm.config import QUIRK_PRESETS
from chip8_vm.display import render_text


# =============================================================================
# Example Programs
# =============================================================================

def _words(*words: int) -> bytes:
    return b"".join(w.to_bytes(2, "big") for w in words)


EXAMPLE_PROGRAMS = {
    # Draws the hex digits 0-F in two rows using the built-in font
    "Font Table": _words(
        0x6000,  # V0 = 0     digit
        0x6102,  # V1 = 2     x
        0x6202,  # V2 = 2     y
        0xF029,  # I = font(V0)
        0xD125,  # draw 5 rows at (V1, V2)
        0x7001,  # V0 += 1
        0x7107,  # V1 += 7
        0x3008,  # skip if V0 == 8
        0x1206,  # loop
        0x6102,  # V1 = 2
        0x620A,  # V2 = 10
        0xF029,  # I = font(V0)
        0xD125,
        0x7001,
        0x7107,
        0x3010,  # skip if V0 == 16
        0x1216,  # loop
        0x1222,  # done: spin
    ),

    # Counts 0-255 on screen as three decimal digits using BCD
    "BCD Counter": _words(
        0x6300,  # V3 = 0     counter
        0x00E0,  # cls
        0xA300,  # I = 0x300  scratch
        0xF333,  # bcd V3
        0xF265,  # V0..V2 = digits
        0x6410,  # V4 = 16    x
        0x650C,  # V5 = 12    y
        0xF029, 0xD455, 0x7406,
        0xF129, 0xD455, 0x7406,
        0xF229, 0xD455,
        0x7301,  # V3 += 1
        0x1202,  # loop
    ),

    # Shows the last key pressed, waiting for press-and-release each time
    "Key Echo": _words(
        0xF00A,  # V0 = key
        0x00E0,
        0xF029,
        0x6118,
        0x620C,
        0xD125,
        0x1200,
    ),
}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(rom_file, example: str, quirks: str, frames: int, keys: str, seed: int) -> tuple:
    """Execute a program and return results.

    Args:
        rom_file: Uploaded ROM path (or None to use the example)
        example: Name of a bundled example program
        quirks: Variant semantics preset name
        frames: Number of 60 Hz frames to run
        keys: Hex keys held down during the run
        seed: Random seed

    Returns:
        Tuple of (screen_text, summary_text, trace_text)
    """
    try:
        cpu = Interpreter(
            quirks=QUIRK_PRESETS[quirks](),
            seed=int(seed),
            trace=True,
        )
        if rom_file:
            cpu.load_rom_file(rom_file)
        else:
            cpu.load_rom(EXAMPLE_PROGRAMS[example])
        cpu.set_keys(int(k, 16) for k in keys.replace(",", " ").split())

        error_msg = None
        try:
            for _ in range(int(frames)):
                cpu.run_frame()
        except Chip8Error as e:
            error_msg = str(e)

        screen_text = render_text(cpu.state, border=True)

        summary = cpu.get_summary()
        summary_lines = [
            "EXECUTION SUMMARY",
            "=" * 40,
            f"Cycles: {summary['cycles']}",
            f"State: {summary['run_state']}",
            f"PC: {summary['pc']:03X}   I: {summary['index']:03X}",
            f"Stack depth: {summary['stack_depth']}",
            f"Delay timer: {summary['delay_timer']}",
        ]
        if error_msg:
            summary_lines.append(f"\nRuntime: {error_msg}")
        summary_lines.append("")
        summary_lines.append("REGISTERS")
        summary_lines.append("-" * 40)
        for reg, value in summary["registers"].items():
            marker = " *" if value != 0 else ""
            summary_lines.append(f"  {reg}: {value:3d} (0x{value:02X}){marker}")
        summary_text = "\n".join(summary_lines)

        trace_lines = ["EXECUTION TRACE (last 100 cycles)", "=" * 60]
        for entry in cpu.trace[-100:]:
            trace_lines.append(f"[{entry.cycle}] {entry.pc:03X}: {entry.instruction}")
            if entry.error:
                trace_lines.append(f"    ERROR: {entry.error}")
        trace_text = "\n".join(trace_lines)

        return screen_text, summary_text, trace_text

    except Exception as e:
        return f"Error: {str(e)}", "", ""


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="chip8-vm Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # chip8-vm: CHIP-8 Virtual Machine

        Runs a CHIP-8 program for a number of 60 Hz frames and shows the
        64x32 screen, registers and execution trace.
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Font Table",
                    label="Example Program"
                )
                rom_upload = gr.File(
                    label="Or upload a ROM",
                    type="filepath"
                )

                gr.Markdown("### Settings")

                with gr.Row():
                    quirks_radio = gr.Radio(
                        choices=sorted(QUIRK_PRESETS),
                        value="chip8",
                        label="Variant Semantics",
                        info="chip8: original | superchip: SUPER-CHIP"
                    )
                    frames = gr.Slider(
                        minimum=1,
                        maximum=600,
                        value=60,
                        step=1,
                        label="Frames"
                    )

                with gr.Row():
                    keys_input = gr.Textbox(
                        value="",
                        label="Keys held (hex, e.g. 5,A)"
                    )
                    seed_input = gr.Number(
                        value=0,
                        precision=0,
                        label="Random seed"
                    )

                run_button = gr.Button("Run Program", variant="primary")

            with gr.Column(scale=3):
                screen_output = gr.Textbox(
                    label="Screen",
                    lines=34,
                    interactive=False
                )
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=16,
                        interactive=False
                    )
                    trace_output = gr.Textbox(
                        label="Execution Trace",
                        lines=16,
                        interactive=False
                    )

        with gr.Accordion("Keypad Layout", open=False):
            gr.Markdown("""
            | Keyboard | Keypad |
            |----------|--------|
            | `1 2 3 4` | `1 2 3 C` |
            | `q w e r` | `4 5 6 D` |
            | `a s d f` | `7 8 9 E` |
            | `z x c v` | `A 0 B F` |
            """)

        run_button.click(
            fn=run_program,
            inputs=[rom_upload, example_dropdown, quirks_radio, frames, keys_input, seed_input],
            outputs=[screen_output, summary_output, trace_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
