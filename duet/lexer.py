from duet.errors import ParseFailure


class Token:
    def __init__(self, type, value, line=None, column=None):
        self.type = type
        self.value = value
        self.line = line
        self.column = column

    def __repr__(self):
        return f"Token({self.type}, {self.value})"


KEYWORDS = {
    'if': 'IF',
    'else': 'ELSE',
    'for': 'FOR',
    'def': 'DEF',
    'print': 'PRINT',
    'random': 'RANDOM',
    'true': 'TRUE',
    'false': 'FALSE',
}

SINGLE = {
    '(': 'LPAREN',
    ')': 'RPAREN',
    '{': 'LBRACE',
    '}': 'RBRACE',
    '[': 'LBRACKET',
    ']': 'RBRACKET',
    ',': 'COMMA',
    ';': 'SEMICOLON',
    '*': 'STAR',
    '/': 'SLASH',
}

# Longest match first
DOUBLE = {
    '==': 'EQEQ',
    '!=': 'NEQ',
    '<=': 'LTE',
    '>=': 'GTE',
    '++': 'PLUSPLUS',
    '--': 'MINUSMINUS',
}

OPERATORS = {
    '=': 'EQ',
    '<': 'LT',
    '>': 'GT',
    '+': 'PLUS',
    '-': 'MINUS',
}

ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\'}


class Lexer:
    def __init__(self, source):
        self.source = source
        self.pos = 0
        self.length = len(source)
        self.line = 1
        self.line_start = 0

    def error(self, message):
        raise ParseFailure(message, line=self.line, column=self.pos - self.line_start + 1)

    def token(self, type, value, start):
        return Token(type, value, self.line, start - self.line_start + 1)

    def tokenize(self):
        tokens = []
        while self.pos < self.length:
            char = self.source[self.pos]

            # Skip whitespace
            if char.isspace():
                if char == '\n':
                    self.line += 1
                    self.line_start = self.pos + 1
                self.pos += 1
                continue
            # Skip comments
            elif char == '#':
                while self.pos < self.length and self.source[self.pos] != '\n':
                    self.pos += 1
                continue

            start = self.pos
            pair = self.source[self.pos:self.pos + 2]
            if pair in DOUBLE:
                tokens.append(self.token(DOUBLE[pair], pair, start))
                self.pos += 2
            elif char in SINGLE:
                tokens.append(self.token(SINGLE[char], char, start))
                self.pos += 1
            elif char in OPERATORS:
                tokens.append(self.token(OPERATORS[char], char, start))
                self.pos += 1

            # String Literals
            elif char == '"':
                tokens.append(self.token('STRING', self.read_string(), start))

            # Numbers: integer or float (e.g. 123, 3.14)
            elif char.isdigit():
                while self.pos < self.length and self.source[self.pos].isdigit():
                    self.pos += 1

                is_float = False
                # Float: digits '.' digits
                if (
                    self.pos + 1 < self.length
                    and self.source[self.pos] == '.'
                    and self.source[self.pos + 1].isdigit()
                ):
                    is_float = True
                    self.pos += 1  # consume '.'
                    while self.pos < self.length and self.source[self.pos].isdigit():
                        self.pos += 1

                value = self.source[start:self.pos]
                tokens.append(self.token('FLOAT' if is_float else 'NUMBER', value, start))

            # Identifiers and Keywords
            elif char.isalpha() or char == '_':
                while self.pos < self.length and (self.source[self.pos].isalnum() or self.source[self.pos] == '_'):
                    self.pos += 1
                value = self.source[start:self.pos]
                tokens.append(self.token(KEYWORDS.get(value, 'IDENTIFIER'), value, start))
            else:
                self.error(f"Unexpected character: {char!r}")

        return tokens

    def read_string(self):
        self.pos += 1  # consume opening "
        chars = []
        while self.pos < self.length:
            c = self.source[self.pos]
            if c == '"':
                self.pos += 1
                return ''.join(chars)
            if c == '\n':
                break
            if c == '\\':
                if self.pos + 1 >= self.length:
                    break
                esc = self.source[self.pos + 1]
                if esc not in ESCAPES:
                    self.error(f"Unknown string escape: \\{esc}")
                chars.append(ESCAPES[esc])
                self.pos += 2
                continue
            chars.append(c)
            self.pos += 1
        self.error("Unterminated string literal")
