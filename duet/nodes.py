from dataclasses import dataclass, fields
from typing import Optional, Tuple


class Node:
    """Base class for every syntax element of a submission."""


@dataclass(frozen=True)
class Sequence(Node):
    statements: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class Number(Node):
    value: int


@dataclass(frozen=True)
class Float(Node):
    value: float


@dataclass(frozen=True)
class String(Node):
    value: str


@dataclass(frozen=True)
class Boolean(Node):
    value: bool


@dataclass(frozen=True)
class Identifier(Node):
    name: str


@dataclass(frozen=True)
class BinaryOp(Node):
    left: Node
    op: str  # + - * /
    right: Node


@dataclass(frozen=True)
class Comparison(Node):
    left: Node
    op: str  # < > <= >= == !=
    right: Node


@dataclass(frozen=True)
class Assign(Node):
    name: str
    expression: Node


@dataclass(frozen=True)
class Increment(Node):
    name: str


@dataclass(frozen=True)
class Decrement(Node):
    name: str


@dataclass(frozen=True)
class If(Node):
    condition: Node
    then_part: Node
    else_part: Optional[Node] = None


@dataclass(frozen=True)
class ForLoop(Node):
    initialization: Optional[Node]
    condition: Optional[Node]
    step: Optional[Node]
    body: Node


@dataclass(frozen=True)
class Print(Node):
    expression: Node


@dataclass(frozen=True)
class Random(Node):
    min_value: Optional[Node] = None
    max_value: Optional[Node] = None


@dataclass(frozen=True)
class FunctionDef(Node):
    name: str
    params: Tuple[str, ...]
    body: Node


@dataclass(frozen=True)
class FunctionCall(Node):
    name: str
    args: Tuple[Node, ...] = ()


@dataclass(frozen=True)
class Array(Node):
    elements: Tuple[Node, ...] = ()


def last_statement(node):
    # Follows trailing Sequences down to the statement that gives the value.
    while isinstance(node, Sequence):
        if not node.statements:
            return None
        node = node.statements[-1]
    return node


def dump(node, indent=0):
    """Render a node as an indented tree, one field per line."""
    pad = "  " * indent
    if node is None:
        return f"{pad}<none>"
    if isinstance(node, Sequence):
        lines = [f"{pad}Sequence"]
        lines.extend(dump(stmt, indent + 1) for stmt in node.statements)
        return "\n".join(lines)

    scalars = []
    children = []
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, Node):
            children.append((f.name, value))
        elif isinstance(value, tuple) and value and isinstance(value[0], Node):
            children.extend((f"{f.name}[{i}]", v) for i, v in enumerate(value))
        else:
            scalars.append(f"{f.name}={value!r}")

    lines = [f"{pad}{type(node).__name__}" + (f" {' '.join(scalars)}" if scalars else "")]
    for label, child in children:
        lines.append(f"{pad}  {label}:")
        lines.append(dump(child, indent + 2))
    return "\n".join(lines)
