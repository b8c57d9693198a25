"""Recursive-descent parser producing the node tree of one submission."""
from duet.errors import ParseFailure
from duet.lexer import Lexer, Token
from duet.nodes import (
    Array,
    Assign,
    BinaryOp,
    Boolean,
    Comparison,
    Decrement,
    Float,
    ForLoop,
    FunctionCall,
    FunctionDef,
    Identifier,
    If,
    Increment,
    Number,
    Print,
    Random,
    Sequence,
    String,
)

COMPARISONS = {'LT': '<', 'GT': '>', 'LTE': '<=', 'GTE': '>=', 'EQEQ': '==', 'NEQ': '!='}
ADDITIVE = {'PLUS': '+', 'MINUS': '-'}
MULTIPLICATIVE = {'STAR': '*', 'SLASH': '/'}


class Parser:
    def __init__(self, tokens):
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset=0):
        if self.pos + offset < len(self.tokens):
            return self.tokens[self.pos + offset]
        return Token('EOF', '')

    def error(self, message, token=None):
        token = token or self.peek()
        raise ParseFailure(message, line=token.line, column=token.column)

    def consume(self, type):
        token = self.peek()
        if token.type == type:
            self.pos += 1
            return token
        found = token.type if token.type == 'EOF' else f"{token.type} {token.value!r}"
        self.error(f"Expected token type {type}, found {found}")

    def match(self, type):
        if self.peek().type == type:
            self.pos += 1
            return True
        return False

    def parse(self):
        program = self.parse_program('EOF')
        if self.peek().type != 'EOF':
            self.error(f"Unexpected token: {self.peek().value!r}")
        return program

    def parse_program(self, end):
        statements = []
        while True:
            while self.match('SEMICOLON'):
                pass
            if self.peek().type in (end, 'EOF'):
                break
            statements.append(self.parse_statement())
        return Sequence(tuple(statements))

    def parse_statement(self):
        token = self.peek()
        if token.type == 'IF':
            return self.parse_if()
        elif token.type == 'FOR':
            return self.parse_for()
        elif token.type == 'DEF':
            return self.parse_function()
        return self.parse_simple()

    def parse_simple(self):
        if self.peek().type == 'IDENTIFIER' and self.peek(1).type == 'EQ':
            name = self.consume('IDENTIFIER').value
            self.consume('EQ')
            return Assign(name, self.parse_expression())
        return self.parse_expression()

    def parse_block(self):
        if self.match('LBRACE'):
            body = self.parse_program('RBRACE')
            self.consume('RBRACE')
            return body
        return self.parse_statement()

    def parse_if(self):
        self.consume('IF')
        self.consume('LPAREN')
        condition = self.parse_expression()
        self.consume('RPAREN')
        then_part = self.parse_block()
        else_part = None
        if self.match('ELSE'):
            else_part = self.parse_block()
        return If(condition, then_part, else_part)

    def parse_for(self):
        self.consume('FOR')
        self.consume('LPAREN')
        initialization = None
        if self.peek().type != 'SEMICOLON':
            initialization = self.parse_simple()
        self.consume('SEMICOLON')
        condition = None
        if self.peek().type != 'SEMICOLON':
            condition = self.parse_expression()
        self.consume('SEMICOLON')
        step = None
        if self.peek().type != 'RPAREN':
            step = self.parse_simple()
        self.consume('RPAREN')
        return ForLoop(initialization, condition, step, self.parse_block())

    def parse_function(self):
        self.consume('DEF')
        name = self.consume('IDENTIFIER').value
        self.consume('LPAREN')
        params = []
        if self.peek().type != 'RPAREN':
            while True:
                token = self.consume('IDENTIFIER')
                if token.value in params:
                    self.error(f"Duplicate parameter '{token.value}' in {name}()", token)
                params.append(token.value)
                if not self.match('COMMA'):
                    break
        self.consume('RPAREN')
        return FunctionDef(name, tuple(params), self.parse_block())

    # --- expressions ---

    def parse_expression(self):
        left = self.parse_additive()
        if self.peek().type in COMPARISONS:
            op = COMPARISONS[self.consume(self.peek().type).type]
            left = Comparison(left, op, self.parse_additive())
        return left

    def parse_additive(self):
        left = self.parse_term()
        while self.peek().type in ADDITIVE:
            op = ADDITIVE[self.consume(self.peek().type).type]
            left = BinaryOp(left, op, self.parse_term())
        return left

    def parse_term(self):
        left = self.parse_unary()
        while self.peek().type in MULTIPLICATIVE:
            op = MULTIPLICATIVE[self.consume(self.peek().type).type]
            left = BinaryOp(left, op, self.parse_unary())
        return left

    def parse_unary(self):
        if self.match('MINUS'):
            operand = self.parse_unary()
            if isinstance(operand, Number):
                return Number(-operand.value)
            if isinstance(operand, Float):
                return Float(-operand.value)
            return BinaryOp(Number(0), '-', operand)
        return self.parse_postfix()

    def parse_postfix(self):
        if self.peek().type == 'IDENTIFIER':
            following = self.peek(1).type
            if following == 'PLUSPLUS':
                name = self.consume('IDENTIFIER').value
                self.consume('PLUSPLUS')
                return Increment(name)
            if following == 'MINUSMINUS':
                name = self.consume('IDENTIFIER').value
                self.consume('MINUSMINUS')
                return Decrement(name)
        return self.parse_primary()

    def parse_primary(self):
        token = self.peek()

        if token.type == 'NUMBER':
            self.pos += 1
            return Number(int(token.value))
        elif token.type == 'FLOAT':
            self.pos += 1
            return Float(float(token.value))
        elif token.type == 'STRING':
            self.pos += 1
            return String(token.value)
        elif token.type in ('TRUE', 'FALSE'):
            self.pos += 1
            return Boolean(token.type == 'TRUE')
        elif token.type == 'PRINT':
            self.pos += 1
            self.consume('LPAREN')
            expression = self.parse_expression()
            self.consume('RPAREN')
            return Print(expression)
        elif token.type == 'RANDOM':
            self.pos += 1
            self.consume('LPAREN')
            if self.match('RPAREN'):
                return Random()
            min_value = self.parse_expression()
            self.consume('COMMA')
            max_value = self.parse_expression()
            self.consume('RPAREN')
            return Random(min_value, max_value)
        elif token.type == 'IDENTIFIER':
            self.pos += 1
            if self.match('LPAREN'):
                return FunctionCall(token.value, self.parse_arguments('RPAREN'))
            return Identifier(token.value)
        elif token.type == 'LBRACKET':
            self.pos += 1
            return Array(self.parse_arguments('RBRACKET'))
        elif token.type == 'LPAREN':
            self.pos += 1
            expression = self.parse_expression()
            self.consume('RPAREN')
            return expression

        found = "end of input" if token.type == 'EOF' else repr(token.value)
        self.error(f"Unexpected token in expression: {found}")

    def parse_arguments(self, closing):
        args = []
        if self.peek().type != closing:
            while True:
                args.append(self.parse_expression())
                if not self.match('COMMA'):
                    break
        self.consume(closing)
        return tuple(args)


def parse(source):
    """Tokenize and parse one submission into a Sequence."""
    return Parser(Lexer(source).tokenize()).parse()
