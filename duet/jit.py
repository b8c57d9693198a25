import ctypes
import itertools
import logging
import os

import llvmlite.binding as llvm

from duet.errors import BackendLoweringFailure
from duet.rtypes import RuntimeType, random_int

log = logging.getLogger(__name__)

# Define types
c_void_p = ctypes.c_void_p
c_int32 = ctypes.c_int32
c_double = ctypes.c_double
c_uint8 = ctypes.c_uint8

RANDOM_SYMBOL = "duet_random"

if os.name == 'nt':
    libc = ctypes.CDLL('msvcrt')
    LIBC_SYMBOLS = {"printf": "printf", "sprintf": "sprintf", "snprintf": "_snprintf",
                    "malloc": "malloc", "strdup": "_strdup", "strcmp": "strcmp"}
else:
    libc = ctypes.CDLL(None)
    LIBC_SYMBOLS = {"printf": "printf", "sprintf": "sprintf", "snprintf": "snprintf",
                    "malloc": "malloc", "strdup": "strdup", "strcmp": "strcmp"}

# Storage cell per runtime type; BOOL is an i1 in IR, one byte in memory.
CELL_TYPES = {
    RuntimeType.INT: c_int32,
    RuntimeType.FLOAT: c_double,
    RuntimeType.BOOL: c_uint8,
    RuntimeType.STRING: c_void_p,
    RuntimeType.INT_ARRAY: c_void_p,
}

# ctypes restype of the REPL entry function per declared result type.
RESULT_TYPES = {
    RuntimeType.INT: c_int32,
    RuntimeType.FLOAT: c_double,
    RuntimeType.BOOL: c_uint8,
    RuntimeType.STRING: c_void_p,
    RuntimeType.INT_ARRAY: c_void_p,
    RuntimeType.NONE: None,
}

# --- Runtime callbacks ---

# i32 duet_random(): draws from the generator shared with the interpreter
RANDOM_PROTO = ctypes.CFUNCTYPE(c_int32)
_random_callback = RANDOM_PROTO(random_int)

# u8 written by the entry function: 0 when its result is "no value" (a loop
# that never ran), whatever the declared return type.
RESULT_PRESENT_SYMBOL = "duet.result.present"
_result_present = c_uint8(1)

# Zero values of the pointer types; generated code refers to them by symbol.
EMPTY_STRING_SYMBOL = "duet.empty.string"
EMPTY_ARRAY_SYMBOL = "duet.empty.array"
_EMPTY_STRING = ctypes.create_string_buffer(b"")
_EMPTY_ARRAY = (c_int32 * 1)(0)

_initialized = False


def register_runtime_symbols():
    for name, libc_name in LIBC_SYMBOLS.items():
        llvm.add_symbol(name, ctypes.cast(getattr(libc, libc_name), c_void_p).value)
    llvm.add_symbol(RANDOM_SYMBOL, ctypes.cast(_random_callback, c_void_p).value)
    llvm.add_symbol(RESULT_PRESENT_SYMBOL, ctypes.addressof(_result_present))
    llvm.add_symbol(EMPTY_STRING_SYMBOL, ctypes.addressof(_EMPTY_STRING))
    llvm.add_symbol(EMPTY_ARRAY_SYMBOL, ctypes.addressof(_EMPTY_ARRAY))


def initialize():
    global _initialized
    if _initialized:
        return
    llvm.initialize_native_target()
    llvm.initialize_native_asmprinter()
    register_runtime_symbols()
    _initialized = True


def flush_stdout():
    # printf output from JIT code sits in the C stdio buffer
    libc.fflush(None)


def read_string(address):
    if not address:
        return ""
    return ctypes.string_at(address).decode("utf-8", errors="replace")


def read_int_array(address):
    # Layout: [length, e0, e1, ...] of i32
    if not address:
        return []
    buf = ctypes.cast(address, ctypes.POINTER(c_int32))
    return [buf[i + 1] for i in range(buf[0])]


def to_python(raw, kind):
    if kind is RuntimeType.NONE:
        return None
    if kind is RuntimeType.INT:
        return int(raw)
    if kind is RuntimeType.FLOAT:
        return float(raw)
    if kind is RuntimeType.BOOL:
        return bool(raw & 1)
    if kind is RuntimeType.STRING:
        return read_string(raw)
    return read_int_array(raw)


class GlobalSlot:
    """Storage for one variable, owned by Python and exported to the JIT.

    Generated code refers to it as an external global named ``symbol``;
    the cell outlives every per-submission execution engine. Pointer cells
    start out at a process-lifetime empty string or empty array, never null.
    """

    _ids = itertools.count()

    def __init__(self, name, kind):
        initialize()
        self.name = name
        self.type = kind
        self.symbol = f"duet.var.{name}.{next(self._ids)}"
        self.cell = CELL_TYPES[kind]()
        if kind is RuntimeType.STRING:
            self.cell.value = ctypes.addressof(_EMPTY_STRING)
        elif kind is RuntimeType.INT_ARRAY:
            self.cell.value = ctypes.addressof(_EMPTY_ARRAY)
        llvm.add_symbol(self.symbol, ctypes.addressof(self.cell))
        log.debug("allocated slot %s (%s)", self.symbol, kind)

    def read(self):
        return to_python(self.cell.value, self.type)

    def __repr__(self):
        return f"GlobalSlot({self.symbol}, {self.type})"


class JitEngine:
    """Compiles one module with MCJIT and calls its entry function."""

    def __init__(self):
        initialize()
        self.target = llvm.Target.from_default_triple()

    def compile(self, llvm_ir):
        try:
            mod = llvm.parse_assembly(llvm_ir)
            mod.verify()
        except RuntimeError as e:
            raise BackendLoweringFailure(f"LLVM rejected the module: {e}") from e

        # The execution engine takes ownership of its target machine.
        target_machine = self.target.create_target_machine()
        ee = llvm.create_mcjit_compiler(mod, target_machine)
        ee.finalize_object()
        log.debug("created MCJIT engine (triple=%s)", llvm.get_default_triple())
        return ee

    def run(self, module, function_name, result_type):
        ee = self.compile(str(module))
        address = ee.get_function_address(function_name)
        if not address:
            raise BackendLoweringFailure(f"'{function_name}' not found in JIT module")

        func = ctypes.CFUNCTYPE(RESULT_TYPES[result_type])(address)
        _result_present.value = 1
        try:
            raw = func()
        finally:
            flush_stdout()
        # convert while the engine (and its constant strings) is still alive
        value = to_python(raw, result_type) if _result_present.value else None
        del ee
        return value
