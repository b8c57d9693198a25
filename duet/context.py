from collections import namedtuple
import logging

log = logging.getLogger(__name__)

# storage: the Python value (interpreter) or a jit.GlobalSlot (code generator)
SymbolEntry = namedtuple("SymbolEntry", ["storage", "type"])

# definition: the FunctionDef node; return_type: its declared RuntimeType
FunctionEntry = namedtuple("FunctionEntry", ["definition", "return_type"])


class Context:
    """Persistent name -> (storage, type) table.

    Value semantics: ``add`` returns a new table and leaves the receiver
    untouched, so a submission can build on a snapshot and be committed (or
    dropped) as a whole.
    """

    def __init__(self, symbols=None, functions=None, version=0):
        self._symbols = dict(symbols or {})
        self._functions = dict(functions or {})
        self.version = version

    @classmethod
    def empty(cls):
        return cls()

    def add(self, name, storage, type):
        symbols = dict(self._symbols)
        symbols[name] = SymbolEntry(storage, type)
        return Context(symbols, self._functions, self.version + 1)

    def get(self, name):
        return self._symbols.get(name)

    def add_function(self, name, entry):
        functions = dict(self._functions)
        functions[name] = entry
        return Context(self._symbols, functions, self.version + 1)

    def get_function(self, name):
        return self._functions.get(name)

    def names(self):
        return list(self._symbols)

    def function_names(self):
        return list(self._functions)

    def __contains__(self, name):
        return name in self._symbols

    def __repr__(self):
        return f"Context(v{self.version}, symbols={sorted(self._symbols)}, functions={sorted(self._functions)})"


class Session:
    """Session-scoped environment handle shared by every submission."""

    def __init__(self, context=None):
        self.context = context or Context.empty()

    def commit(self, context):
        log.debug("commit context v%d -> v%d", self.context.version, context.version)
        self.context = context
        return context
