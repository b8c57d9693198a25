import logging

from duet.nodes import Sequence, last_statement
from duet.rtypes import RuntimeType, binary_result

log = logging.getLogger(__name__)


class TypePredictor:
    """Best-effort result type prediction over a submission.

    Pure: it neither mutates nodes nor the context. Names assigned earlier
    in the same submission are tracked in a local overlay so a later read
    sees the newest type. Anything it cannot tell is NONE, never an error.
    """

    def __init__(self, context, functions=None):
        self.context = context
        self.scopes = [{}]
        # functions defined earlier in the same submission: name -> return type
        self.functions = dict(functions or {})

    def predict(self, node, overlay=None):
        self.scopes = [dict(overlay or {})]
        return self.visit(node)

    def predict_last(self, node):
        # Phase A: the type of the statement that produces the submission's value.
        self.scopes = [{}]
        return self._predict_tail(node)

    def _predict_tail(self, node):
        if isinstance(node, Sequence):
            if not node.statements:
                return RuntimeType.NONE
            for stmt in node.statements[:-1]:
                self.visit(stmt)
            return self._predict_tail(node.statements[-1])
        return self.visit(node)

    def predict_function(self, definition, overlay=None):
        """Declared return type of a function: every parameter is FLOAT.

        A body that calls itself is predicted against a provisional return
        type, starting from FLOAT, until the prediction stops changing.
        """
        scope = dict(overlay or {})
        scope.update((name, RuntimeType.FLOAT) for name in definition.params)
        ty = RuntimeType.FLOAT
        for _ in range(len(RuntimeType)):
            inner = TypePredictor(self.context, self.functions)
            inner.functions[definition.name] = ty
            predicted = inner.predict(definition.body, scope)
            if predicted is ty:
                break
            ty = predicted
        log.debug("function %s predicted -> %s", definition.name, ty)
        return ty

    def visible_names(self):
        merged = {}
        for scope in self.scopes:
            merged.update(scope)
        return merged

    def lookup(self, name):
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        entry = self.context.get(name)
        if entry is not None:
            return entry.type
        return None

    def declare(self, name, ty):
        self.scopes[-1][name] = ty

    def visit(self, node):
        if node is None:
            return RuntimeType.NONE
        method_name = f'visit_{type(node).__name__}'
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node):
        return RuntimeType.NONE

    def visit_Sequence(self, node):
        ty = RuntimeType.NONE
        for stmt in node.statements:
            ty = self.visit(stmt)
        return ty

    def visit_Number(self, node):
        return RuntimeType.INT

    def visit_Float(self, node):
        return RuntimeType.FLOAT

    def visit_String(self, node):
        return RuntimeType.STRING

    def visit_Boolean(self, node):
        return RuntimeType.BOOL

    def visit_Identifier(self, node):
        return self.lookup(node.name) or RuntimeType.NONE

    def visit_BinaryOp(self, node):
        left = self.visit(node.left)
        right = self.visit(node.right)
        return binary_result(left, node.op, right) or RuntimeType.NONE

    def visit_Comparison(self, node):
        self.visit(node.left)
        self.visit(node.right)
        return RuntimeType.BOOL

    def visit_Assign(self, node):
        ty = self.visit(node.expression)
        if ty is not RuntimeType.NONE:
            self.declare(node.name, ty)
        return ty

    def visit_Increment(self, node):
        return RuntimeType.INT

    def visit_Decrement(self, node):
        return RuntimeType.INT

    def visit_If(self, node):
        self.visit(node.condition)
        then_ty = self.visit(node.then_part)
        if node.else_part is None:
            return RuntimeType.NONE
        else_ty = self.visit(node.else_part)
        return then_ty if then_ty is else_ty else RuntimeType.NONE

    def visit_ForLoop(self, node):
        self.visit(node.initialization)
        self.visit(node.condition)
        ty = self.visit(node.body)
        self.visit(node.step)
        return ty

    def visit_Print(self, node):
        return self.visit(node.expression)

    def visit_Random(self, node):
        return RuntimeType.INT

    def visit_FunctionDef(self, node):
        self.functions[node.name] = self.predict_function(node, self.visible_names())
        return RuntimeType.NONE

    def visit_FunctionCall(self, node):
        for arg in node.args:
            self.visit(arg)
        if node.name in self.functions:
            return self.functions[node.name]
        entry = self.context.get_function(node.name)
        if entry is None:
            return RuntimeType.NONE
        return entry.return_type

    def visit_Array(self, node):
        return RuntimeType.INT_ARRAY


def predict_result(context, node):
    ty = TypePredictor(context).predict_last(node)
    log.debug("predicted result type of %s: %s", type(last_statement(node)).__name__, ty)
    return ty
