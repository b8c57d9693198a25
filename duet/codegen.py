import itertools
import logging
import sys

from llvmlite import ir

from duet import jit
from duet.context import FunctionEntry, Session
from duet.errors import (
    BackendLoweringFailure,
    InvalidOperator,
    TypeMismatch,
    UndefinedFunction,
    UndefinedVariable,
    lowering,
)
from duet.nodes import last_statement
from duet.rtypes import (
    ARITHMETIC_OPS,
    COMPARISON_OPS,
    RuntimeType,
    binary_result,
    comparable,
    is_numeric,
    wrap_int,
)
from duet.semantic import TypePredictor, predict_result

log = logging.getLogger(__name__)

I1 = ir.IntType(1)
I8 = ir.IntType(8)
I32 = ir.IntType(32)
I64 = ir.IntType(64)
F64 = ir.DoubleType()
VOIDPTR = I8.as_pointer()
INTPTR = I32.as_pointer()

# Large enough for any "%d" or "%g" rendering.
NUMBER_TEXT_SIZE = 32


def llvm_type(kind):
    if kind is RuntimeType.INT:
        return I32
    if kind is RuntimeType.FLOAT:
        return F64
    if kind is RuntimeType.BOOL:
        return I1
    if kind is RuntimeType.STRING:
        return VOIDPTR
    if kind is RuntimeType.INT_ARRAY:
        return INTPTR
    return ir.VoidType()


class CodeGen:
    """Lowers one REPL submission at a time to LLVM IR and runs it.

    Phase A predicts the submission's result type so the entry function can
    be declared before any instruction exists; Phase B lowers the tree into
    that function. Every visit returns ``(ir value or None, RuntimeType)``.
    Variable storage lives in the session as ``jit.GlobalSlot``s; the
    updated table is committed only after the submission ran.
    """

    _submissions = itertools.count()

    def __init__(self, session=None, dump_ir=False):
        self.session = session or Session()
        self.dump_ir = dump_ir
        self.engine = None
        self.module = None
        self.builder = None
        self.context = None
        self.params = {}
        self.functions = {}
        self.globals = {}
        self.strings = {}
        self.branch_points = []
        self.loop_flags = {}
        self.entry_name = None
        self.result_type = None

    # --- driver ---

    def run(self, node):
        module = self.lower(node)
        if self.dump_ir:
            print(module, file=sys.stderr)
        if self.engine is None:
            self.engine = jit.JitEngine()
        value = self.engine.run(module, self.entry_name, self.result_type)
        self.session.commit(self.context)
        return value

    def lower(self, node):
        """Build the module for one submission without executing it."""
        self.context = self.session.context
        self.result_type = predict_result(self.context, node)

        self.module = ir.Module(name="duet_repl")
        self.params = {}
        self.functions = {}
        self.globals = {}
        self.strings = {}
        self.branch_points = []
        self.loop_flags = {}
        self._declare_runtime()

        self.entry_name = f"repl_entry_{next(self._submissions)}"
        func_ty = ir.FunctionType(self._abi_type(self.result_type), [])
        func = ir.Function(self.module, func_ty, name=self.entry_name)
        self.builder = ir.IRBuilder(func.append_basic_block(name="entry"))

        value, ty = self.visit(node)
        if ty is not self.result_type:
            log.debug("result type mispredicted: %s, coercing %s", self.result_type, ty)
        result = self.coerce(value, ty, self.result_type)
        self.store_result_present(node)
        if self.result_type is RuntimeType.NONE:
            self.builder.ret_void()
        elif self.result_type is RuntimeType.BOOL:
            # ctypes reads a whole byte back
            self.builder.ret(self.builder.zext(result, I8))
        else:
            self.builder.ret(result)

        log.debug("lowered %s:\n%s", self.entry_name, self.module)
        return self.module

    def store_result_present(self, node):
        # A loop that never ran has no value, whatever type it was given.
        present = ir.Constant(I8, 1)
        ran_ptr = self.loop_flags.get(id(last_statement(node)))
        if ran_ptr is not None:
            present = self.builder.zext(self.builder.load(ran_ptr, name="ran"), I8)
        self.builder.store(present, self.external(jit.RESULT_PRESENT_SYMBOL, I8))

    def _abi_type(self, kind):
        if kind is RuntimeType.BOOL:
            return I8
        return llvm_type(kind)

    def _declare_runtime(self):
        printf_ty = ir.FunctionType(I32, [VOIDPTR], var_arg=True)
        self.printf = ir.Function(self.module, printf_ty, name="printf")

        sprintf_ty = ir.FunctionType(I32, [VOIDPTR, VOIDPTR], var_arg=True)
        self.sprintf = ir.Function(self.module, sprintf_ty, name="sprintf")

        snprintf_ty = ir.FunctionType(I32, [VOIDPTR, I64, VOIDPTR], var_arg=True)
        self.snprintf = ir.Function(self.module, snprintf_ty, name="snprintf")

        malloc_ty = ir.FunctionType(VOIDPTR, [I64])
        self.malloc = ir.Function(self.module, malloc_ty, name="malloc")

        strdup_ty = ir.FunctionType(VOIDPTR, [VOIDPTR])
        self.strdup = ir.Function(self.module, strdup_ty, name="strdup")

        strcmp_ty = ir.FunctionType(I32, [VOIDPTR, VOIDPTR])
        self.strcmp = ir.Function(self.module, strcmp_ty, name="strcmp")

        random_ty = ir.FunctionType(I32, [])
        self.random = ir.Function(self.module, random_ty, name=jit.RANDOM_SYMBOL)

    # --- helpers ---

    def global_string(self, text, name="str"):
        gv = self.strings.get(text)
        if gv is None:
            data = bytearray((text + "\0").encode("utf8"))
            c_str_val = ir.Constant(ir.ArrayType(I8, len(data)), data)
            gv = ir.GlobalVariable(self.module, c_str_val.type, name=self.module.get_unique_name(name))
            gv.linkage = 'internal'
            gv.global_constant = True
            gv.initializer = c_str_val
            self.strings[text] = gv
        # Return i8* pointer to start
        return self.builder.bitcast(gv, VOIDPTR)

    def global_ref(self, slot):
        return self.external(slot.symbol, llvm_type(slot.type))

    def external(self, symbol, ty):
        gv = self.globals.get(symbol)
        if gv is None:
            # no initializer: resolved against a Python-owned cell at JIT time
            gv = ir.GlobalVariable(self.module, ty, name=symbol)
            self.globals[symbol] = gv
        return gv

    def zero(self, kind):
        if kind is RuntimeType.INT:
            return ir.Constant(I32, 0)
        if kind is RuntimeType.FLOAT:
            return ir.Constant(F64, 0.0)
        if kind is RuntimeType.BOOL:
            return ir.Constant(I1, 0)
        # pointer zero values outlive the module, so they may be stored anywhere
        if kind is RuntimeType.STRING:
            empty = self.external(jit.EMPTY_STRING_SYMBOL, ir.ArrayType(I8, 1))
            return self.builder.bitcast(empty, VOIDPTR)
        if kind is RuntimeType.INT_ARRAY:
            empty = self.external(jit.EMPTY_ARRAY_SYMBOL, ir.ArrayType(I32, 1))
            return self.builder.bitcast(empty, INTPTR)
        return None

    def entry_alloca(self, ty, name):
        with self.builder.goto_entry_block():
            return self.builder.alloca(ty, name=name)

    def to_float(self, value, kind):
        if kind is RuntimeType.FLOAT:
            return value
        if kind is RuntimeType.BOOL:
            return self.builder.uitofp(value, F64)
        return self.builder.sitofp(value, F64)

    def bool_text(self, value):
        return self.builder.select(value, self.global_string("true"), self.global_string("false"))

    def format_arg(self, value, kind):
        """printf conversion and argument for one value."""
        if kind is RuntimeType.INT:
            return "%d", value
        if kind is RuntimeType.FLOAT:
            return "%g", value
        if kind is RuntimeType.STRING:
            return "%s", value
        if kind is RuntimeType.BOOL:
            return "%s", self.bool_text(value)
        if kind is RuntimeType.NONE:
            return "%s", self.global_string("none")
        raise lowering(TypeMismatch(f"Cannot format a value of type {kind}"))

    def text(self, value, kind):
        """Canonical text of a scalar as an i8*."""
        if kind is RuntimeType.STRING:
            return value
        if kind in (RuntimeType.BOOL, RuntimeType.NONE):
            return self.format_arg(value, kind)[1]
        conv, arg = self.format_arg(value, kind)
        buf = self.builder.call(self.malloc, [ir.Constant(I64, NUMBER_TEXT_SIZE)], name="textbuf")
        self.builder.call(self.sprintf, [buf, self.global_string(conv, "fmt"), arg])
        return buf

    def concat(self, left, left_ty, right, right_ty):
        # The buffer is never freed: it lives as long as the process.
        left_conv, left_arg = self.format_arg(left, left_ty)
        right_conv, right_arg = self.format_arg(right, right_ty)
        fmt = self.global_string(left_conv + right_conv, "concat_fmt")

        null = ir.Constant(VOIDPTR, None)
        length = self.builder.call(self.snprintf, [null, ir.Constant(I64, 0), fmt, left_arg, right_arg], name="concatlen")
        size = self.builder.add(self.builder.sext(length, I64), ir.Constant(I64, 1), name="concatsize")
        buf = self.builder.call(self.malloc, [size], name="concatbuf")
        self.builder.call(self.sprintf, [buf, fmt, left_arg, right_arg])
        return buf

    def coerce(self, value, kind, target):
        """Coerce a value to a declared type; never fails (zero value fallback)."""
        if kind is target:
            return value
        if target is RuntimeType.NONE:
            return None
        if kind is RuntimeType.NONE:
            return self.zero(target)
        if target is RuntimeType.STRING and kind is not RuntimeType.INT_ARRAY:
            return self.text(value, kind)
        if target is RuntimeType.FLOAT and kind in (RuntimeType.INT, RuntimeType.BOOL):
            return self.to_float(value, kind)
        if target is RuntimeType.INT:
            if kind is RuntimeType.FLOAT:
                return self.builder.fptosi(value, I32)
            if kind is RuntimeType.BOOL:
                return self.builder.zext(value, I32)
        if target is RuntimeType.BOOL:
            if kind is RuntimeType.INT:
                return self.builder.icmp_signed('!=', value, ir.Constant(I32, 0))
            if kind is RuntimeType.FLOAT:
                return self.builder.fcmp_unordered('!=', value, ir.Constant(F64, 0.0))
        return self.zero(target)

    def condition(self, node):
        value, kind = self.visit(node)
        if kind is RuntimeType.BOOL:
            return value
        if kind is RuntimeType.INT:
            return self.builder.icmp_signed('!=', value, ir.Constant(I32, 0), name="cond")
        raise lowering(TypeMismatch(f"Condition must be bool, got {kind}"))

    # --- visitor ---

    def visit(self, node):
        method_name = f'visit_{type(node).__name__}'
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node):
        raise BackendLoweringFailure(f"No visit_{type(node).__name__} method in CodeGen")

    def visit_Sequence(self, node):
        result = (None, RuntimeType.NONE)
        for stmt in node.statements:
            result = self.visit(stmt)
        return result

    def visit_Number(self, node):
        return ir.Constant(I32, wrap_int(node.value)), RuntimeType.INT

    def visit_Float(self, node):
        return ir.Constant(F64, node.value), RuntimeType.FLOAT

    def visit_String(self, node):
        return self.global_string(node.value), RuntimeType.STRING

    def visit_Boolean(self, node):
        return ir.Constant(I1, 1 if node.value else 0), RuntimeType.BOOL

    def visit_Identifier(self, node):
        if node.name in self.params:
            return self.params[node.name], RuntimeType.FLOAT
        entry = self.context.get(node.name)
        if entry is None:
            raise lowering(UndefinedVariable(node.name))
        ptr = self.global_ref(entry.storage)
        return self.builder.load(ptr, name=node.name), entry.type

    def visit_Array(self, node):
        values = []
        for element in node.elements:
            value, kind = self.visit(element)
            if kind is not RuntimeType.INT:
                raise lowering(TypeMismatch(f"Array elements must be int, got {kind}"))
            values.append(value)

        # [length, e0, e1, ...]
        size = ir.Constant(I64, (len(values) + 1) * 4)
        raw = self.builder.call(self.malloc, [size], name="arraybuf")
        buf = self.builder.bitcast(raw, INTPTR, name="arrayptr")
        self.builder.store(ir.Constant(I32, len(values)), buf)
        for i, value in enumerate(values):
            elem_ptr = self.builder.gep(buf, [ir.Constant(I32, i + 1)], name="elemptr")
            self.builder.store(value, elem_ptr)
        return buf, RuntimeType.INT_ARRAY

    def visit_BinaryOp(self, node):
        if node.op not in ARITHMETIC_OPS:
            raise lowering(InvalidOperator(node.op))
        left, left_ty = self.visit(node.left)
        right, right_ty = self.visit(node.right)

        result_ty = binary_result(left_ty, node.op, right_ty)
        if result_ty is None:
            raise lowering(TypeMismatch(
                f"Unsupported operand types for '{node.op}': {left_ty} and {right_ty}"
            ))

        if result_ty is RuntimeType.STRING:
            return self.concat(left, left_ty, right, right_ty), result_ty

        if result_ty is RuntimeType.FLOAT:
            left = self.to_float(left, left_ty)
            right = self.to_float(right, right_ty)
            if node.op == '+':
                return self.builder.fadd(left, right, name="faddtmp"), result_ty
            elif node.op == '-':
                return self.builder.fsub(left, right, name="fsubtmp"), result_ty
            elif node.op == '*':
                return self.builder.fmul(left, right, name="fmultmp"), result_ty
            return self.builder.fdiv(left, right, name="fdivtmp"), result_ty

        # No divide-by-zero check on the native path.
        if node.op == '+':
            return self.builder.add(left, right, name="addtmp"), result_ty
        elif node.op == '-':
            return self.builder.sub(left, right, name="subtmp"), result_ty
        elif node.op == '*':
            return self.builder.mul(left, right, name="multmp"), result_ty
        return self.builder.sdiv(left, right, name="divtmp"), result_ty

    def visit_Comparison(self, node):
        if node.op not in COMPARISON_OPS:
            raise lowering(InvalidOperator(node.op))
        left, left_ty = self.visit(node.left)
        right, right_ty = self.visit(node.right)

        if not comparable(left_ty, node.op, right_ty):
            raise lowering(TypeMismatch(
                f"Cannot compare {left_ty} and {right_ty} with '{node.op}'"
            ))

        if is_numeric(left_ty) and is_numeric(right_ty):
            if RuntimeType.FLOAT in (left_ty, right_ty):
                left = self.to_float(left, left_ty)
                right = self.to_float(right, right_ty)
                if node.op == '!=':
                    return self.builder.fcmp_unordered('!=', left, right, name="fcmptmp"), RuntimeType.BOOL
                return self.builder.fcmp_ordered(node.op, left, right, name="fcmptmp"), RuntimeType.BOOL
            return self.builder.icmp_signed(node.op, left, right, name="cmptmp"), RuntimeType.BOOL

        if left_ty is RuntimeType.BOOL and right_ty is RuntimeType.BOOL:
            return self.builder.icmp_unsigned(node.op, left, right, name="boolcmp"), RuntimeType.BOOL

        # Strings (or mixed with a string/bool): equality of canonical text
        diff = self.builder.call(self.strcmp, [self.text(left, left_ty), self.text(right, right_ty)], name="strcmp")
        return self.builder.icmp_signed(node.op, diff, ir.Constant(I32, 0), name="strcmptmp"), RuntimeType.BOOL

    def visit_Assign(self, node):
        if node.name in self.params:
            raise lowering(TypeMismatch(f"Cannot assign to parameter '{node.name}'"))
        value, kind = self.visit(node.expression)
        if kind is RuntimeType.NONE:
            raise lowering(TypeMismatch(f"Cannot assign a value of type none to '{node.name}'"))

        entry = self.context.get(node.name)
        if entry is None or entry.type is not kind:
            # A new type needs new storage; reads follow the table from here on.
            slot = jit.GlobalSlot(node.name, kind)
            self.init_slot(slot, entry)
            self.context = self.context.add(node.name, slot, kind)
        else:
            slot = entry.storage

        stored = value
        if kind is RuntimeType.STRING:
            # Copy out of the module's constants, which die with the engine
            stored = self.builder.call(self.strdup, [value], name="strcopy")
        self.builder.store(stored, self.global_ref(slot))
        return value, kind

    def init_slot(self, slot, previous):
        """Give storage allocated inside a branch its value from before the branch.

        The other path never writes the new slot, yet later reads use it.
        """
        if not self.branch_points or previous is None:
            return
        with self.builder.goto_block(self.branch_points[0]):
            old = self.builder.load(self.global_ref(previous.storage), name="previous")
            self.builder.store(self.coerce(old, previous.type, slot.type), self.global_ref(slot))

    def visit_Increment(self, node):
        return self.step_variable(node.name, self.builder.add)

    def visit_Decrement(self, node):
        return self.step_variable(node.name, self.builder.sub)

    def step_variable(self, name, op):
        if name in self.params:
            raise lowering(TypeMismatch(f"Cannot increment or decrement parameter '{name}'"))
        entry = self.context.get(name)
        if entry is None:
            raise lowering(UndefinedVariable(name))
        if entry.type is not RuntimeType.INT:
            raise lowering(TypeMismatch(f"Cannot increment or decrement '{name}' of type {entry.type}"))
        ptr = self.global_ref(entry.storage)
        current = self.builder.load(ptr, name=name)
        updated = op(current, ir.Constant(I32, 1), name="step")
        self.builder.store(updated, ptr)
        return updated, RuntimeType.INT

    def visit_If(self, node):
        cond_val = self.condition(node.condition)

        func = self.builder.function
        then_bb = func.append_basic_block(name="then")
        else_bb = func.append_basic_block(name="else")
        merge_bb = func.append_basic_block(name="ifcont")

        self.branch_points.append(self.builder.block)
        self.builder.cbranch(cond_val, then_bb, else_bb)

        # Generate 'then' block
        self.builder.position_at_end(then_bb)
        then_val, then_ty = self.visit(node.then_part)
        then_end = self.builder.block
        self.builder.branch(merge_bb)

        # Generate 'else' block
        self.builder.position_at_end(else_bb)
        else_val, else_ty = None, RuntimeType.NONE
        if node.else_part is not None:
            else_val, else_ty = self.visit(node.else_part)
        else_end = self.builder.block
        self.builder.branch(merge_bb)
        self.branch_points.pop()

        # Continue
        self.builder.position_at_end(merge_bb)
        if node.else_part is None or then_ty is not else_ty or then_ty is RuntimeType.NONE:
            return None, RuntimeType.NONE
        phi = self.builder.phi(llvm_type(then_ty), name="ifval")
        phi.add_incoming(then_val, then_end)
        phi.add_incoming(else_val, else_end)
        return phi, then_ty

    def visit_ForLoop(self, node):
        if node.initialization is not None:
            self.visit(node.initialization)

        func = self.builder.function
        pre_bb = self.builder.block
        cond_bb = func.append_basic_block(name="for.cond")
        body_bb = func.append_basic_block(name="for.body")
        step_bb = func.append_basic_block(name="for.step")
        end_bb = func.append_basic_block(name="for.end")

        self.builder.branch(cond_bb)
        self.branch_points.append(pre_bb)

        # Condition Block
        self.builder.position_at_end(cond_bb)
        if node.condition is not None:
            cond_val = self.condition(node.condition)
            self.builder.cbranch(cond_val, body_bb, end_bb)
        else:
            self.builder.branch(body_bb)

        # Body Block: remember the last value it produced
        self.builder.position_at_end(body_bb)
        body_val, body_ty = self.visit(node.body)
        result_ptr = None
        if body_ty is not RuntimeType.NONE:
            result_ptr = self.entry_alloca(llvm_type(body_ty), "for.value")
            ran_ptr = self.entry_alloca(I1, "for.ran")
            self.builder.store(body_val, result_ptr)
            self.builder.store(ir.Constant(I1, 1), ran_ptr)
            self.loop_flags[id(node)] = ran_ptr
        self.builder.branch(step_bb)

        # Step Block
        self.builder.position_at_end(step_bb)
        if node.step is not None:
            self.visit(node.step)
        self.builder.branch(cond_bb)
        self.branch_points.pop()

        if result_ptr is not None:
            # zero value plus a cleared flag: the loop may never run
            with self.builder.goto_block(pre_bb):
                self.builder.store(self.zero(body_ty), result_ptr)
                self.builder.store(ir.Constant(I1, 0), ran_ptr)

        self.builder.position_at_end(end_bb)
        if result_ptr is None:
            return None, RuntimeType.NONE
        return self.builder.load(result_ptr, name="forval"), body_ty

    def visit_Print(self, node):
        value, kind = self.visit(node.expression)
        if kind is RuntimeType.INT_ARRAY:
            self.print_array(value)
            return value, kind

        conv, arg = self.format_arg(value, kind)
        fmt = self.global_string(conv + "\n", name="fmt")
        self.builder.call(self.printf, [fmt, arg])
        return value, kind

    def print_array(self, buf):
        # printf("[") ; for each element printf("%s%d", sep, e) ; printf("]\n")
        length = self.builder.load(buf, name="arraylen")
        self.builder.call(self.printf, [self.global_string("%s", "fmt"), self.global_string("[")])

        index_ptr = self.entry_alloca(I32, "i")
        self.builder.store(ir.Constant(I32, 0), index_ptr)

        func = self.builder.function
        cond_bb = func.append_basic_block(name="print.cond")
        body_bb = func.append_basic_block(name="print.body")
        end_bb = func.append_basic_block(name="print.end")
        self.builder.branch(cond_bb)

        self.builder.position_at_end(cond_bb)
        index = self.builder.load(index_ptr, name="idx")
        more = self.builder.icmp_signed('<', index, length, name="more")
        self.builder.cbranch(more, body_bb, end_bb)

        self.builder.position_at_end(body_bb)
        first = self.builder.icmp_signed('==', index, ir.Constant(I32, 0))
        sep = self.builder.select(first, self.global_string(""), self.global_string(", "))
        slot = self.builder.add(index, ir.Constant(I32, 1))
        elem = self.builder.load(self.builder.gep(buf, [slot], name="elemptr"), name="elem")
        self.builder.call(self.printf, [self.global_string("%s%d", "fmt"), sep, elem])
        self.builder.store(self.builder.add(index, ir.Constant(I32, 1)), index_ptr)
        self.builder.branch(cond_bb)

        self.builder.position_at_end(end_bb)
        self.builder.call(self.printf, [self.global_string("%s", "fmt"), self.global_string("]\n")])

    def visit_Random(self, node):
        rand_val = self.builder.call(self.random, [], name="randcall")
        if node.min_value is None or node.max_value is None:
            return rand_val, RuntimeType.INT

        min_val, min_ty = self.visit(node.min_value)
        max_val, max_ty = self.visit(node.max_value)
        if min_ty is not RuntimeType.INT or max_ty is not RuntimeType.INT:
            raise lowering(TypeMismatch("random() bounds must be int"))

        # Reordered at run time: the bounds are only known then.
        swapped = self.builder.icmp_signed('>', min_val, max_val, name="swapped")
        low = self.builder.select(swapped, max_val, min_val, name="low")
        high = self.builder.select(swapped, min_val, max_val, name="high")
        diff = self.builder.sub(high, low, name="diff")
        range_size = self.builder.add(diff, ir.Constant(I32, 1), name="rangesize")
        mod_result = self.builder.srem(rand_val, range_size, name="modtmp")
        return self.builder.add(mod_result, low, name="randomInRange"), RuntimeType.INT

    def visit_FunctionDef(self, node):
        return_type = TypePredictor(self.context).predict_function(node)
        entry = FunctionEntry(node, return_type)
        self.context = self.context.add_function(node.name, entry)
        self.emit_function(node.name, entry)
        return None, RuntimeType.NONE

    def emit_function(self, name, entry):
        definition = entry.definition
        func_ty = ir.FunctionType(llvm_type(entry.return_type), [F64] * len(definition.params))
        func = ir.Function(self.module, func_ty, name=self.module.get_unique_name(f"fn_{name}"))
        # Registered before the body so the body can call itself
        self.functions[name] = func

        saved_builder, saved_params, saved_points = self.builder, self.params, self.branch_points
        self.builder = ir.IRBuilder(func.append_basic_block(name="entry"))
        self.branch_points = []
        self.params = {}
        for pname, arg in zip(definition.params, func.args):
            arg.name = pname
            self.params[pname] = arg
        try:
            value, kind = self.visit(definition.body)
            result = self.coerce(value, kind, entry.return_type)
            if entry.return_type is RuntimeType.NONE:
                self.builder.ret_void()
            else:
                self.builder.ret(result)
        finally:
            self.builder, self.params, self.branch_points = saved_builder, saved_params, saved_points
        log.debug("emitted %s(%d) -> %s", func.name, len(definition.params), entry.return_type)
        return func

    def visit_FunctionCall(self, node):
        entry = self.context.get_function(node.name)
        if entry is None:
            raise lowering(UndefinedFunction(node.name))
        params = entry.definition.params
        if len(node.args) != len(params):
            raise lowering(TypeMismatch(
                f"{node.name}() takes {len(params)} arguments, got {len(node.args)}"
            ))

        args = []
        for pname, arg in zip(params, node.args):
            value, kind = self.visit(arg)
            if not is_numeric(kind):
                raise lowering(TypeMismatch(
                    f"Argument '{pname}' of {node.name}() must be numeric, got {kind}"
                ))
            args.append(self.to_float(value, kind))

        # Defined in an earlier submission: emit it into this module first
        callee = self.functions.get(node.name)
        if callee is None:
            callee = self.emit_function(node.name, entry)

        call = self.builder.call(callee, args, name="calltmp" if entry.return_type is not RuntimeType.NONE else "")
        if entry.return_type is RuntimeType.NONE:
            return None, RuntimeType.NONE
        return call, entry.return_type
