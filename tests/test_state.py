"""Tests for MachineState container."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_vm.errors import (
    ImageTooLarge,
    MemoryAccessOutOfBounds,
    StackOverflow,
    StackUnderflow,
)
from chip8_vm.state import (
    FONT,
    MAX_IMAGE_SIZE,
    MEMORY_SIZE,
    PROGRAM_START,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    STACK_CAPACITY,
    MachineState,
    RunState,
    create_initial_state,
)


class TestMachineStateCreation:
    """Test MachineState initialization and defaults."""

    def test_default_state(self):
        """Default state has zeroed registers and pc at the program start."""
        state = MachineState()
        assert state.pc == PROGRAM_START
        assert state.index == 0
        assert state.registers == [0] * 16
        assert state.stack == []
        assert state.delay_timer == 0
        assert state.run_state is RunState.RUNNING
        assert state.awaiting_key is False
        assert state.pending_key is None
        assert len(state.memory) == MEMORY_SIZE
        assert len(state.framebuffer) == SCREEN_WIDTH * SCREEN_HEIGHT
        assert state.keys == [False] * 16

    def test_create_initial_state_loads_font(self):
        """Font occupies bytes 0-79."""
        state = create_initial_state(b"")
        assert len(FONT) == 80
        assert bytes(state.memory[0:80]) == FONT
        assert all(b == 0 for b in state.memory[80:PROGRAM_START])

    def test_create_initial_state_loads_image(self):
        """Program image is copied to 0x200."""
        image = bytes([0x12, 0x34, 0xAB, 0xCD])
        state = create_initial_state(image)
        assert bytes(state.memory[PROGRAM_START:PROGRAM_START + 4]) == image
        assert state.pc == PROGRAM_START
        assert state.run_state is RunState.RUNNING

    def test_image_at_max_size(self):
        """An image of exactly 3584 bytes fits."""
        image = bytes([0xAA]) * MAX_IMAGE_SIZE
        state = create_initial_state(image)
        assert state.memory[MEMORY_SIZE - 1] == 0xAA

    def test_image_too_large(self):
        """An image one byte over the limit is rejected."""
        with pytest.raises(ImageTooLarge) as exc_info:
            create_initial_state(bytes(MAX_IMAGE_SIZE + 1))
        assert exc_info.value.size == MAX_IMAGE_SIZE + 1
        assert exc_info.value.max_size == 3584


class TestMachineStateValidation:
    """Test state validation."""

    def test_valid_state(self):
        """Freshly created state passes validation."""
        assert create_initial_state(b"\x00\xe0").validate() is True

    def test_invalid_register_value(self):
        """Register value out of byte range fails validation."""
        state = create_initial_state()
        state.registers[0] = 256
        assert state.validate() is False

    def test_overwritten_font(self):
        """Clobbered font table fails validation."""
        state = create_initial_state()
        state.memory[0] = 0
        assert state.validate() is False

    def test_stack_too_deep(self):
        """More than 12 stack entries fails validation."""
        state = create_initial_state()
        state.stack = [0x200] * (STACK_CAPACITY + 1)
        assert state.validate() is False

    def test_candidate_key_outside_wait(self):
        """A pending key only makes sense while awaiting a key."""
        state = create_initial_state()
        state.pending_key = 0x3
        assert state.validate() is False
        state.awaiting_key = True
        assert state.validate() is True


class TestMemoryAccess:
    """Test bounds-checked memory access."""

    def test_read_write(self):
        """write then read returns the same bytes."""
        state = create_initial_state()
        state.write(0x300, b"\x01\x02\x03")
        assert state.read(0x300, 3) == b"\x01\x02\x03"

    def test_last_byte_accessible(self):
        """Address 4095 can be read and written on its own."""
        state = create_initial_state()
        state.write(0xFFF, b"\x7f")
        assert state.read(0xFFF) == b"\x7f"

    def test_read_past_end(self):
        """Two-byte read at 4095 faults."""
        state = create_initial_state()
        with pytest.raises(MemoryAccessOutOfBounds) as exc_info:
            state.read(0xFFF, 2)
        assert exc_info.value.address == 0xFFF
        assert exc_info.value.count == 2

    def test_write_past_end_leaves_memory_untouched(self):
        """A faulting write writes nothing."""
        state = create_initial_state()
        with pytest.raises(MemoryAccessOutOfBounds):
            state.write(0xFFE, b"\x01\x02\x03")
        assert state.memory[0xFFE] == 0
        assert state.memory[0xFFF] == 0


class TestCallStack:
    """Test call stack capacity."""

    def test_push_pop(self):
        """Pop returns addresses in reverse order."""
        state = MachineState()
        state.push(0x202)
        state.push(0x304)
        assert state.pop() == 0x304
        assert state.pop() == 0x202

    def test_capacity(self):
        """Twelve pushes succeed, the thirteenth overflows."""
        state = MachineState()
        for i in range(STACK_CAPACITY):
            state.push(0x200 + 2 * i)
        with pytest.raises(StackOverflow):
            state.push(0x400)
        assert len(state.stack) == STACK_CAPACITY

    def test_pop_empty(self):
        """Pop on empty stack underflows."""
        with pytest.raises(StackUnderflow):
            MachineState().pop()


class TestTimersAndScreen:
    """Test delay timer and framebuffer helpers."""

    def test_tick_decrements(self):
        state = MachineState(delay_timer=2)
        state.tick_timers()
        assert state.delay_timer == 1

    def test_tick_stops_at_zero(self):
        """Delay timer never goes below zero."""
        state = MachineState(delay_timer=1)
        state.tick_timers()
        state.tick_timers()
        assert state.delay_timer == 0

    def test_pixel_and_rows(self):
        """pixel() and rows() use row-major layout."""
        state = MachineState()
        state.framebuffer[1 * SCREEN_WIDTH + 3] = 1
        assert state.pixel(3, 1) is True
        assert state.pixel(1, 3) is False
        rows = state.rows()
        assert len(rows) == SCREEN_HEIGHT
        assert len(rows[0]) == SCREEN_WIDTH
        assert rows[1][3] is True

    def test_clear_screen(self):
        state = MachineState()
        state.framebuffer[0] = 1
        state.framebuffer[-1] = 1
        state.clear_screen()
        assert not any(state.framebuffer)
        assert len(state.framebuffer) == SCREEN_WIDTH * SCREEN_HEIGHT


class TestMachineStateSnapshot:
    """Test state snapshot for tracing."""

    def test_snapshot_is_copy(self):
        """Modifying a snapshot doesn't affect state."""
        state = create_initial_state()
        state.registers[0] = 42
        state.stack.append(0x202)
        snapshot = state.snapshot()

        assert snapshot["registers"][0] == 42
        assert snapshot["pc"] == PROGRAM_START
        assert snapshot["run_state"] == "running"

        snapshot["registers"][0] = 99
        snapshot["stack"].append(0x300)
        assert state.registers[0] == 42
        assert state.stack == [0x202]

    def test_dump_registers(self):
        """dump_registers keys registers V0-VF."""
        state = MachineState()
        state.registers[0xA] = 7
        regs = state.dump_registers()
        assert list(regs) == [f"V{i:X}" for i in range(16)]
        assert regs["VA"] == 7
