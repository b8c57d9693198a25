import io

import pytest

from duet import rtypes
from duet.codegen import CodeGen
from duet.context import Session
from duet.interpreter import Interpreter
from duet.parser import parse


@pytest.fixture(autouse=True)
def fixed_seed():
    rtypes.seed(1234)


@pytest.fixture
def interp():
    """Run sources through one interpreter session; ``interp.out`` holds print output."""
    session = Session()
    out = io.StringIO()
    interpreter = Interpreter(session, out=out)

    def run(source):
        return interpreter.evaluate(parse(source))

    run.session = session
    run.out = out
    return run


@pytest.fixture
def jit():
    """Run sources through one code generator session."""
    session = Session()
    codegen = CodeGen(session)

    def run(source):
        return codegen.run(parse(source))

    run.session = session
    run.codegen = codegen
    return run
