"""Duet: a small scripting language with a tree-walking interpreter and an LLVM JIT."""

__version__ = "0.1.0"
