class DuetError(Exception):
    stage = "execute"

    def __init__(self, message, hint=None, line=None, column=None):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.line = line
        self.column = column

    def __str__(self):
        loc = ""
        if self.line:
            loc += f"{self.line}:"
        if self.column:
            loc += f"{self.column}:"

        text = f"{loc} {self.message}" if loc else self.message
        if self.hint:
            text += f" ({self.hint})"
        return text


class ParseFailure(DuetError):
    stage = "parse"


class EvaluationError(DuetError):
    """Runtime failure inside the interpreter."""


class UndefinedVariable(EvaluationError):
    def __init__(self, name, hint=None):
        super().__init__(f"Undefined variable '{name}'", hint=hint)
        self.name = name


class UndefinedFunction(EvaluationError):
    def __init__(self, name, hint=None):
        super().__init__(f"Undefined function '{name}'", hint=hint)
        self.name = name


class TypeMismatch(EvaluationError):
    pass


class DivideByZero(EvaluationError):
    def __init__(self):
        super().__init__("Division by zero")


class InvalidOperator(EvaluationError):
    def __init__(self, op):
        super().__init__(f"Invalid operator '{op}'")
        self.op = op


class BackendLoweringFailure(DuetError):
    """Wraps a module or verification error reported by llvmlite."""
    stage = "lower"


def lowering(error):
    # Errors raised while building IR are reported as lowering-stage failures.
    error.stage = "lower"
    return error
