from __future__ import annotations
from .classes import (
    Evaluation,
    Identifier,
    Literal,
    LiteralKind,
    Node,
    OpcodeRef,
    Program,
    Push,
    SourceRange,
    Token,
    TokenKind,
)
from .errors import lert, yert, tert
import re


_identifier_pattern = re.compile(
    r'[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*'
)
_word_pattern = re.compile(r'[A-Za-z0-9_]*')
_whitespace_pattern = re.compile(r'\s+')
_digits = '0123456789'
_hex_digits = '0123456789abcdefABCDEF'

_closing = {
    TokenKind.PUSH_CLOSE: TokenKind.PUSH_OPEN,
    TokenKind.EVALUATION_CLOSE: TokenKind.EVALUATION_OPEN,
}


def _advance(text: str, line: int, column: int) -> tuple[int, int]:
    """Return the line and column reached after consuming the text."""
    newlines = text.count('\n')
    if newlines:
        return (line + newlines, len(text) - text.rindex('\n'))
    return (line, column + len(text))

def tokenize(source: str) -> list[Token]:
    """Split the script source into tokens, including comments and
        whitespace. Raises LexError at the first unrecognized character
        or unterminated literal or comment.
    """
    tert(type(source) is str, 'source must be str')
    tokens = []
    index, line, column = 0, 1, 1

    while index < len(source):
        char = source[index]
        rest = source[index:index+2]

        if char.isspace():
            kind = TokenKind.WHITESPACE
            end = _whitespace_pattern.match(source, index).end()
        elif rest == '//':
            kind = TokenKind.COMMENT
            end = source.find('\n', index)
            end = len(source) if end == -1 else end
        elif rest == '/*':
            kind = TokenKind.COMMENT
            end = source.find('*/', index + 2)
            lert(end != -1, 'Unterminated block comment: missing "*/".',
                 SourceRange(line, column, line, column + 2))
            end += 2
        elif char in ('"', "'"):
            kind = TokenKind.UTF8
            end = source.find(char, index + 1)
            lert(end != -1, f'Unterminated UTF8 literal: missing closing {char}.',
                 SourceRange(line, column, line, column + 1))
            end += 1
        elif rest == '$(':
            kind = TokenKind.EVALUATION_OPEN
            end = index + 2
        elif char in '<>)':
            kind = {
                '<': TokenKind.PUSH_OPEN,
                '>': TokenKind.PUSH_CLOSE,
                ')': TokenKind.EVALUATION_CLOSE,
            }[char]
            end = index + 1
        elif rest == '0x':
            kind = TokenKind.HEX
            end = _word_pattern.match(source, index + 2).end()
        elif char in _digits or (char == '-' and index + 1 < len(source)
                                 and source[index+1] in _digits):
            kind = TokenKind.BIGINT
            end = _word_pattern.match(source, index + 1).end()
        elif char.isascii() and (char.isalpha() or char == '_'):
            end = _identifier_pattern.match(source, index).end()
            name = source[index:end]
            kind = TokenKind.OPCODE if name.startswith('OP_') else TokenKind.IDENTIFIER
        else:
            lert(False, f'Unrecognized character "{char}".',
                 SourceRange(line, column, line, column + 1))

        text = source[index:end]
        end_line, end_column = _advance(text, line, column)
        tokens.append(Token(kind, text, SourceRange(line, column, end_line, end_column)))
        index, line, column = end, end_line, end_column

    return tokens

def _parse_literal(token: Token) -> Node:
    """Parse a single non-bracket token into a node."""
    match token.kind:
        case TokenKind.BIGINT:
            digits = token.text[1:] if token.text[0] == '-' else token.text
            yert(len(digits) > 0 and all(d in _digits for d in digits),
                 f'Malformed BigInt literal "{token.text}".', token.range)
            try:
                value = int(token.text)
            except ValueError:
                yert(False, f'BigInt literal is too long: {len(digits)} digits.',
                     token.range)
            return Literal(LiteralKind.BIGINT, value, token.range)
        case TokenKind.HEX:
            digits = token.text[2:]
            yert(len(digits) > 0 and all(d in _hex_digits for d in digits),
                 f'Malformed hex literal "{token.text}".', token.range)
            return Literal(LiteralKind.HEX, digits, token.range)
        case TokenKind.UTF8:
            return Literal(LiteralKind.UTF8, token.text[1:-1], token.range)
        case TokenKind.OPCODE:
            return OpcodeRef(token.text, token.range)
        case _:
            return Identifier(token.text, token.range)

def parse(tokens: list[Token]) -> Program:
    """Build the syntax tree for a token sequence. Comments and
        whitespace are dropped. Raises ParseError for unbalanced push or
        evaluation brackets and malformed literals.
    """
    # each frame holds the opening token and the children collected so far
    frames: list[tuple[Token|None, list[Node]]] = [(None, [])]
    significant = [
        t for t in tokens
        if t.kind not in (TokenKind.COMMENT, TokenKind.WHITESPACE)
    ]

    for token in significant:
        match token.kind:
            case TokenKind.PUSH_OPEN | TokenKind.EVALUATION_OPEN:
                frames.append((token, []))
            case TokenKind.PUSH_CLOSE | TokenKind.EVALUATION_CLOSE:
                opener, children = frames[-1]
                yert(opener is not None,
                     f'Unexpected "{token.text}" without a matching '
                     f'"{_closing[token.kind].value}".', token.range)
                expected = '>' if opener.kind is TokenKind.PUSH_OPEN else ')'
                yert(opener.kind is _closing[token.kind],
                     f'Expected "{expected}" to close "{opener.text}", found '
                     f'"{token.text}".', token.range)
                frames.pop()
                node_class = Push if token.kind is TokenKind.PUSH_CLOSE else Evaluation
                frames[-1][1].append(node_class(children, opener.range.join(token.range)))
            case _:
                frames[-1][1].append(_parse_literal(token))

    if len(frames) > 1:
        opener = frames[-1][0]
        kind = 'push' if opener.kind is TokenKind.PUSH_OPEN else 'evaluation'
        closer = '>' if opener.kind is TokenKind.PUSH_OPEN else ')'
        yert(False, f'Unterminated {kind}: missing "{closer}" for "{opener.text}".',
             opener.range)

    if significant:
        range = significant[0].range.join(significant[-1].range)
    else:
        range = SourceRange(1, 1, 1, 1)

    return Program(frames[0][1], range)
