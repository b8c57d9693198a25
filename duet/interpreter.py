import logging

from duet.context import FunctionEntry, Session
from duet.errors import (
    DivideByZero,
    EvaluationError,
    InvalidOperator,
    TypeMismatch,
    UndefinedFunction,
    UndefinedVariable,
)
from duet.rtypes import (
    ARITHMETIC_OPS,
    COMPARISON_OPS,
    EQUALITY_OPS,
    RuntimeType,
    coerce_value,
    int_div,
    is_numeric,
    random_int,
    shared_random,
    to_text,
    type_of,
    wrap_int,
)
from duet.semantic import TypePredictor

log = logging.getLogger(__name__)


class Interpreter:
    """Tree-walking evaluator; the reference semantics of the language.

    Every Assign is committed to the session as soon as it happens, so a
    failure later in the same submission keeps the earlier side effects.
    """

    def __init__(self, session=None, out=None):
        self.session = session or Session()
        self.out = out
        # Parameter frames of the functions currently being called.
        self.frames = []

    def evaluate(self, node):
        self.frames = []
        return self.visit(node)

    def visit(self, node):
        method_name = f'visit_{type(node).__name__}'
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node):
        raise EvaluationError(f"No visit_{type(node).__name__} method in Interpreter")

    # --- variables ---

    def lookup(self, name):
        if self.frames and name in self.frames[-1]:
            return self.frames[-1][name]
        entry = self.session.context.get(name)
        if entry is None:
            raise UndefinedVariable(name)
        return entry.storage

    def store(self, name, value):
        if self.frames and name in self.frames[-1]:
            raise TypeMismatch(f"Cannot assign to parameter '{name}'")
        ty = type_of(value)
        if ty is RuntimeType.NONE:
            raise TypeMismatch(f"Cannot assign a value of type none to '{name}'")
        self.session.commit(self.session.context.add(name, value, ty))
        return value

    # --- literals ---

    def visit_Sequence(self, node):
        result = None
        for stmt in node.statements:
            result = self.visit(stmt)
        return result

    def visit_Number(self, node):
        return wrap_int(node.value)

    def visit_Float(self, node):
        return node.value

    def visit_String(self, node):
        return node.value

    def visit_Boolean(self, node):
        return node.value

    def visit_Identifier(self, node):
        return self.lookup(node.name)

    def visit_Array(self, node):
        values = [self.visit(element) for element in node.elements]
        for value in values:
            if type_of(value) is not RuntimeType.INT:
                raise TypeMismatch(f"Array elements must be int, got {type_of(value)}")
        return values

    # --- operators ---

    def visit_BinaryOp(self, node):
        if node.op not in ARITHMETIC_OPS:
            raise InvalidOperator(node.op)
        left = self.visit(node.left)
        right = self.visit(node.right)
        left_ty, right_ty = type_of(left), type_of(right)

        if left_ty is RuntimeType.INT and right_ty is RuntimeType.INT:
            return self.int_arithmetic(left, node.op, right)
        if is_numeric(left_ty) and is_numeric(right_ty):
            return self.float_arithmetic(float(left), node.op, float(right))
        if RuntimeType.STRING in (left_ty, right_ty):
            if node.op != "+":
                raise TypeMismatch(f"Operator '{node.op}' is not defined for strings")
            for ty in (left_ty, right_ty):
                if ty in (RuntimeType.NONE, RuntimeType.INT_ARRAY):
                    raise TypeMismatch(f"Cannot concatenate {ty} with a string")
            return to_text(left) + to_text(right)

        raise TypeMismatch(f"Unsupported operand types for '{node.op}': {left_ty} and {right_ty}")

    def int_arithmetic(self, left, op, right):
        if op == "+":
            return wrap_int(left + right)
        if op == "-":
            return wrap_int(left - right)
        if op == "*":
            return wrap_int(left * right)
        if right == 0:
            raise DivideByZero()
        return int_div(left, right)

    def float_arithmetic(self, left, op, right):
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if right == 0.0:
            raise DivideByZero()
        return left / right

    def visit_Comparison(self, node):
        if node.op not in COMPARISON_OPS:
            raise InvalidOperator(node.op)
        left = self.visit(node.left)
        right = self.visit(node.right)
        left_ty, right_ty = type_of(left), type_of(right)

        if is_numeric(left_ty) and is_numeric(right_ty):
            return self.compare(left, node.op, right)

        for ty in (left_ty, right_ty):
            if ty in (RuntimeType.NONE, RuntimeType.INT_ARRAY):
                raise TypeMismatch(f"Cannot compare values of type {ty}")
        if node.op not in EQUALITY_OPS:
            raise TypeMismatch(f"Operator '{node.op}' needs numeric operands, got {left_ty} and {right_ty}")
        equal = to_text(left) == to_text(right)
        return equal if node.op == "==" else not equal

    def compare(self, left, op, right):
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        if op == ">=":
            return left >= right
        if op == "==":
            return left == right
        return left != right

    # --- statements ---

    def visit_Assign(self, node):
        value = self.visit(node.expression)
        return self.store(node.name, value)

    def visit_Increment(self, node):
        return self.step_variable(node.name, 1)

    def visit_Decrement(self, node):
        return self.step_variable(node.name, -1)

    def step_variable(self, name, delta):
        value = self.lookup(name)
        if type_of(value) is not RuntimeType.INT:
            raise TypeMismatch(f"Cannot increment or decrement '{name}' of type {type_of(value)}")
        return self.store(name, wrap_int(value + delta))

    def condition(self, node):
        value = self.visit(node)
        if type_of(value) is not RuntimeType.BOOL:
            raise TypeMismatch(f"Condition must be bool, got {type_of(value)}")
        return value

    def visit_If(self, node):
        if self.condition(node.condition):
            return self.visit(node.then_part)
        if node.else_part is not None:
            return self.visit(node.else_part)
        return None

    def visit_ForLoop(self, node):
        if node.initialization is not None:
            self.visit(node.initialization)
        result = None
        while node.condition is None or self.condition(node.condition):
            result = self.visit(node.body)
            if node.step is not None:
                self.visit(node.step)
        return result

    def visit_Print(self, node):
        value = self.visit(node.expression)
        print(to_text(value), file=self.out, flush=True)
        return value

    def visit_Random(self, node):
        if node.min_value is None or node.max_value is None:
            return random_int()
        low = self.visit(node.min_value)
        high = self.visit(node.max_value)
        if type_of(low) is not RuntimeType.INT or type_of(high) is not RuntimeType.INT:
            raise TypeMismatch("random() bounds must be int")
        if low >= high:
            raise EvaluationError(f"Empty random range [{low}, {high})")
        return shared_random.randrange(low, high)

    # --- functions ---

    def visit_FunctionDef(self, node):
        return_type = TypePredictor(self.session.context).predict_function(node)
        log.debug("define %s(%s) -> %s", node.name, ", ".join(node.params), return_type)
        self.session.commit(self.session.context.add_function(node.name, FunctionEntry(node, return_type)))
        return None

    def visit_FunctionCall(self, node):
        entry = self.session.context.get_function(node.name)
        if entry is None:
            raise UndefinedFunction(node.name)
        definition = entry.definition
        if len(node.args) != len(definition.params):
            raise TypeMismatch(
                f"{node.name}() takes {len(definition.params)} arguments, got {len(node.args)}"
            )

        frame = {}
        for name, arg in zip(definition.params, node.args):
            value = self.visit(arg)
            if not is_numeric(type_of(value)):
                raise TypeMismatch(f"Argument '{name}' of {node.name}() must be numeric, got {type_of(value)}")
            frame[name] = float(value)

        self.frames.append(frame)
        try:
            result = self.visit(definition.body)
        finally:
            self.frames.pop()
        return coerce_value(result, entry.return_type)
