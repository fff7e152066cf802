"""4719 Interactive Demo.

A Gradio web interface for stepping through 4719 programs.

Usage:
    cd /path/to/emu4719
    python demo/gradio_app.py

Features:
    - Write or load assembly programs
    - Run to completion or execute one cycle at a time
    - See memory, registers, printed output and bell count
    - Inspect the bounded execution history
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from emu4719 import EmulatorError, Processor, RecordingHooks, RunMode, disassemble
from emu4719.state import hex_format


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Lecture 3": """ld0 13      # r0 = [r0]
ld1 11      # r1 = [r1]
bell
st0 15      # [15] = r0
bell
st0 11      # rewrites the operand of prn
prn 13
halt
3 10 0      # data""",

    "Bell": """bell
halt""",

    "Print 10": """prn 10
halt""",

    "Endless loop": """bell
jmp 0       # lands on bell again""",

    "Custom": ""
}


# =============================================================================
# Session
# =============================================================================

class Session:
    """One processor plus recording hooks, kept in gr.State."""

    def __init__(self):
        self.hooks = RecordingHooks()
        self.cpu = Processor(
            bell_handler=self.hooks.bell,
            print_handler=self.hooks.print,
            run_mode=RunMode.STEPPED,
        )
        self.message = ""

    def load(self, source: str) -> None:
        self.cpu.reset()
        self.cpu.memory.clear()
        self.hooks = RecordingHooks()
        self.cpu.bell_handler = self.hooks.bell
        self.cpu.print_handler = self.hooks.print
        program = self.cpu.load_source(source)
        self.message = f"Loaded {len(program)} bytes"


def render(session: Session) -> tuple:
    """Format memory, registers and history for display."""
    cpu = session.cpu
    regs = cpu.registers

    memory_lines = ["ADDR  VAL  ", "-" * 20]
    for address, value in enumerate(cpu.memory.dump()):
        marker = " <- ip" if address == regs.ip else ""
        memory_lines.append(f"  {hex_format(address)}   {hex_format(value)}{marker}")

    status_lines = [
        f"State:  {cpu.state.name}",
        f"Cycles: {cpu.cycle_count}",
        "",
        f"ip: {regs.ip:>3}   ss: {regs.ss:>3}",
        f"r0: {regs.r0:>3}   r1: {regs.r1:>3}",
        "",
        f"Output: {cpu.output}",
        f"Bells:  {session.hooks.bells}",
    ]
    if session.message:
        status_lines += ["", session.message]

    history_lines = [f"[Cycle {s.cycle}] {s.registers}" for s in reversed(cpu.history)]

    return "\n".join(memory_lines), "\n".join(status_lines), "\n".join(history_lines)


# =============================================================================
# Event Handlers
# =============================================================================

def load_program(source: str, session: Session) -> tuple:
    session = session or Session()
    try:
        session.load(source)
        listing = "\n".join(disassemble(session.cpu.memory.dump()))
    except EmulatorError as e:
        session.message = f"Error: {e}"
        listing = ""
    return (session, listing) + render(session)


def step_program(session: Session) -> tuple:
    session = session or Session()
    cpu = session.cpu
    if cpu.is_running:
        cpu.step()
    else:
        cpu.run()
    session.message = ""
    return (session,) + render(session)


def run_program(max_cycles: int, session: Session) -> tuple:
    session = session or Session()
    cpu = session.cpu
    if cpu.is_running:
        cpu.pause()
    cpu.run_mode = RunMode.GO
    cpu.max_cycles = int(max_cycles)
    try:
        cpu.run()
    finally:
        if cpu.is_running:
            cpu.pause()
        cpu.run_mode = RunMode.STEPPED
    session.message = ""
    return (session,) + render(session)


def reset_program(session: Session) -> tuple:
    session = session or Session()
    session.cpu.reset()
    session.message = "Registers reset; memory kept"
    return (session,) + render(session)


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="4719 Emulator", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # 4719: A Fictional 4-bit Processor

        Sixteen 4-bit memory cells, four registers (`ip`, `ss`, `r0`, `r1`)
        and sixteen opcodes. Assemble a program, then step through it.
        """)

        session = gr.State(Session())

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Assembly Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Lecture 3",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Lecture 3"],
                    label="Source Code",
                    lines=12,
                    placeholder="Enter 4719 assembly here..."
                )

                max_cycles = gr.Slider(
                    minimum=10,
                    maximum=10000,
                    value=1000,
                    step=10,
                    label="Max Cycles (Run)"
                )

                with gr.Row():
                    load_button = gr.Button("Load", variant="primary")
                    step_button = gr.Button("Step")
                    run_button = gr.Button("Run")
                    reset_button = gr.Button("Reset")

                listing_output = gr.Textbox(label="Listing", lines=10, interactive=False)

            with gr.Column(scale=3):
                with gr.Row():
                    memory_output = gr.Textbox(label="Memory", lines=18, interactive=False)
                    status_output = gr.Textbox(label="Processor", lines=18, interactive=False)

                history_output = gr.Textbox(label="History (newest first)", lines=12, interactive=False)

        with gr.Accordion("ISA Reference", open=False):
            gr.Markdown("""
            | Opcode | Mnemonic | Effect |
            |--------|----------|--------|
            | `0` | `halt` | Stop |
            | `1` | `add` | r0 = [r0] + [r1] |
            | `2` | `sub` | r0 = [r0] - [r1] |
            | `3` | `inc0` | r0 = [r0] + 1 |
            | `4` | `inc1` | r1 = [r1] + 1 |
            | `5` | `dec0` | r0 = [r0] - 1 |
            | `6` | `dec1` | r1 = [r1] + 1 (sic) |
            | `7` | `bell` | Ring the bell |
            | `8 x` | `prn x` | Print x |
            | `9 x` | `ld0 x` | r0 = [r0] |
            | `10 x` | `ld1 x` | r1 = [r1] |
            | `11 x` | `st0 x` | [x] = r0 |
            | `12 x` | `st1 x` | [x] = r1 |
            | `13 x` | `jmp x` | ip = x |
            | `14 x` | `jz x` | ip = x if r0 == 0 |
            | `15 x` | `jnz x` | ip = x if r0 == 0 (sic) |

            `[rN]` is the memory cell addressed by rN. `#` starts a comment.
            """)

        views = [memory_output, status_output, history_output]

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )
        load_button.click(
            fn=load_program,
            inputs=[program_input, session],
            outputs=[session, listing_output] + views
        )
        step_button.click(fn=step_program, inputs=[session], outputs=[session] + views)
        run_button.click(fn=run_program, inputs=[max_cycles, session], outputs=[session] + views)
        reset_button.click(fn=reset_program, inputs=[session], outputs=[session] + views)

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
