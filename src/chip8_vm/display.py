"""Host-side presentation and input helpers.

Nothing here is used by the engine itself: the core only exposes the
framebuffer and the key latch. These helpers turn the framebuffer into text
and map a QWERTY keyboard onto the 16-key hex keypad:

    1 2 3 4        1 2 3 C
    q w e r   ->   4 5 6 D
    a s d f        7 8 9 E
    z x c v        A 0 B F
"""

from typing import Dict, Optional

from .state import SCREEN_WIDTH, MachineState

KEYMAP: Dict[str, int] = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "q": 0x4, "w": 0x5, "e": 0x6, "r": 0xD,
    "a": 0x7, "s": 0x8, "d": 0x9, "f": 0xE,
    "z": 0xA, "x": 0x0, "c": 0xB, "v": 0xF,
}

ON = "█"
OFF = " "


def key_for(char: str) -> Optional[int]:
    """Keypad index for a keyboard character, or None if unmapped."""
    return KEYMAP.get(char.lower())


def render_text(state: MachineState, on: str = ON, off: str = OFF, border: bool = False) -> str:
    """Render the framebuffer as SCREEN_HEIGHT lines of text.

    Args:
        state: Machine state to render
        on: Character for a lit cell
        off: Character for a dark cell
        border: Surround the screen with an ASCII frame

    Returns:
        Multi-line string, one line per framebuffer row
    """
    lines = [
        "".join(on if cell else off for cell in row)
        for row in state.rows()
    ]
    if border:
        edge = "+" + "-" * SCREEN_WIDTH + "+"
        lines = [edge] + [f"|{line}|" for line in lines] + [edge]
    return "\n".join(lines)


def lit_cells(state: MachineState) -> int:
    """Number of cells currently on."""
    return sum(state.framebuffer)
