# rvemu

A library that emulates the 32-bit RISC-V base integer instruction set
(RV32I), with a CSR file, `ecall`/`ebreak`/`mret`/`sret`, user, supervisor
and machine privilege modes, pluggable memory-mapped devices and a small
line-driven debugger.

It has no dependencies beyond the standard library. Install with
`pip install .`, or `pip install .[test]` to run the tests with pytest.

## Modules

- `rvemu.instruction`: `decode(code)` turns a 32-bit word into an
  instruction (`RType`, `IType`, `CsrType`, `SType`, `BType`, `UType`,
  `JType`, `Nop`); each has `assemble()` and `disassemble()` (also
  `str()`). `get_bits(code, high, low)` extracts a bit field. Unknown
  opcodes raise `InvalidCode`.
- `rvemu.execute`: `execute(inst, cpu)` runs one decoded instruction and
  returns the next program counter.
- `rvemu.registers`: `Registers`, the 32 integer registers (`x0` always
  reads 0), the `pc` and 4096 CSRs. Registers are read by index
  (`regs[5]`), by name (`read_by_name("a0")`, `"x5"`, `"mstatus"`,
  `"mepc"`, ...) or by CSR number (`read_csr(0x300)`). `items()` lists
  every integer register and the pc. `index_to_name(i)` gives ABI names.
- `rvemu.memory`: `Memory`, 4 GiB of little-endian memory allocated
  lazily page by page, with a list of `Device`s. A `Device` subclass
  implements `matches(addr)`, `read(addr)`, `write(addr, value)` and
  optionally `update()`; loads and stores to an address a device matches
  go to that device instead of memory. Out-of-range accesses raise
  `InvalidMemory`.
- `rvemu.cpu`: `RV32CPU(registers, memory, user_app_size)`, all arguments
  optional. It tracks a `PrivilegeMode` (starting in supervisor mode); in
  user mode every address is offset by `mstatus * user_app_size`
  (default `0x500000`). Devices are updated once every 10,000 steps.
- `rvemu.isa`: the abstract `Isa` base (`step()`, `run()`,
  `fetch_inst()`, `store_many()`) and the errors `EmulatorError`,
  `Ebreak`, `InvalidCode` and `InvalidMemory`.
- `rvemu.evaluate`: `tokenize(exp)` and `evaluate(cpu, exp)` for
  debugger expressions; failures raise `ExpressionError`.
- `rvemu.breakpoint`: `Breakpoints`, watch expressions that fire when
  their value changes.
- `rvemu.debugger`: `parse_command(text)` and the `Debugger`.
- `rvemu.util`: `parse_str(s)` parses a decimal or `0x` hexadecimal
  unsigned 32-bit number, raising `ValueError` otherwise; `info`, `warn`,
  `error`, `debug` and `fatal` print coloured log lines to standard
  output.

## Running instructions

```python
from rvemu.cpu import RV32CPU
from rvemu.memory import Memory
from rvemu.registers import Registers

cpu = RV32CPU(Registers(), Memory([]), 0x500000)

cpu.write_register_by_name("ra", 0x80000000)
cpu.execute(0xFFF08093)                        # addi ra, ra, -1
print(hex(cpu.read_register_by_name("ra")))   # 0x7fffffff
```

`RV32CPU.execute(code)` returns the address of the next instruction
without moving the pc. `step()` fetches the word at the pc, executes it,
sets the pc and updates devices; `run()` steps until an exception stops
it. `ebreak` raises `Ebreak`, whose `code` is the low byte of `a0` as a
signed number. `ecall` raises the privilege level, saves the pc in
`mepc`, sets `mcause` to 11 and jumps to `mtvec`; `mret` and `sret`
lower the level and return to `mepc` or `sepc`.

To load a program, write its bytes with `cpu.store_many(addr, data)` (one
byte per value) and set the pc with `cpu.update_pc(addr)`.

## Decoding and disassembling

```python
from rvemu.instruction import decode

inst = decode(0x30352073)
print(inst.disassemble())           # csrrs zero, a0, 0x303
assert inst.assemble() == 0x30352073
```

`cpu.disassemble(addr)` decodes the word stored at `addr`.

## Debugger

`Debugger(out)` writes to any text stream (standard output by default).
`Debugger.debug(cpu, lines)` prints a banner and reads commands from an
iterable of lines (standard input by default) until `quit` or the lines
run out; `Debugger.handle(cpu, text)` carries out one command and returns
`False` on quit.

| Command                  | Effect                                              |
|--------------------------|-----------------------------------------------------|
| `c`, `continue`          | continue, only when the program is paused           |
| `s`, `step [count]`      | step `count` instructions (default 1)               |
| `p`, `print <expr>`      | print the value of an expression in hex             |
| `b`, `breakpoint <expr>` | stop when the expression's value changes            |
| `d`, `delete <n>`        | delete breakpoint `n`; with no number, step once    |
| `r`, `run`               | run until a breakpoint, an error or `ebreak`        |
| `show`, `layout <what>`  | `asm`, `reg`, `mem` or `break`                      |
| `h`, `help`              | list the commands                                   |
| `q`, `quit`              | leave the debugger                                  |
| `clear`, `cls`           | clear the screen                                    |

`show asm` disassembles from 16 bytes before the pc to 32 bytes after it;
`show reg` lists registers four to a line; `show mem` prints four rows of
four words starting at the pc rounded down to 16 bytes; `show break`
lists the enabled breakpoints.

### Expressions

Expressions accept `0x` hexadecimal numbers, registers written `$name`
(including `$pc`), `+ - * /`, `& |`, `&& ||`, `== !=`, parentheses, and
a leading `*` to read a 32-bit word from memory. Results are unsigned
64-bit numbers. Decimal numbers with more than one digit are read
unreliably (the character after each further digit is skipped, so `123`
reads as `12`); write such numbers in hexadecimal.

## What the package does not do

- It has no command-line program: there is no command to load an
  executable file and run it or debug it. Drive it from Python.
- It has no ELF loader; program bytes must be placed in memory by the
  caller.
- It ships no concrete devices (serial port, timer, keyboard, screen);
  `Device` is an abstract base to subclass.
- Only RV32I with CSR instructions is covered: no multiply/divide,
  atomic, compressed or floating-point extensions, and no virtual memory
  beyond the per-program offset in user mode.