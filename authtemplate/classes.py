from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from .errors import ErrorType, sert, tert


@dataclass(frozen=True)
class SourceRange:
    """A span of source text. Lines and columns are 1-based; the end
        column is exclusive.
    """
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def join(self, other: SourceRange) -> SourceRange:
        """Return the range spanning from this range to the other."""
        return SourceRange(
            self.start_line, self.start_column,
            other.end_line, other.end_column
        )

    def excerpt(self, source: str) -> str:
        """Return the text of the source covered by this range."""
        lines = source.split('\n')
        if self.start_line > len(lines):
            return ''
        if self.start_line == self.end_line:
            line = lines[self.start_line-1]
            return line[self.start_column-1:self.end_column-1]
        parts = [lines[self.start_line-1][self.start_column-1:]]
        parts.extend(lines[self.start_line:self.end_line-1])
        if self.end_line <= len(lines):
            parts.append(lines[self.end_line-1][:self.end_column-1])
        return '\n'.join(parts)

    def __str__(self) -> str:
        return f'{self.start_line}:{self.start_column}'


class TokenKind(Enum):
    IDENTIFIER = 'identifier'
    OPCODE = 'opcode'
    BIGINT = 'bigint'
    HEX = 'hex'
    UTF8 = 'utf8'
    PUSH_OPEN = '<'
    PUSH_CLOSE = '>'
    EVALUATION_OPEN = '$('
    EVALUATION_CLOSE = ')'
    COMMENT = 'comment'
    WHITESPACE = 'whitespace'


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    range: SourceRange


class LiteralKind(Enum):
    BIGINT = 'bigint'
    HEX = 'hex'
    UTF8 = 'utf8'


@dataclass
class Literal:
    """A literal value. BigInt literals hold an int, hex literals hold
        the digits without the 0x prefix, and UTF8 literals hold the
        text between the quotes.
    """
    kind: LiteralKind
    value: int|str
    range: SourceRange


@dataclass
class OpcodeRef:
    name: str
    range: SourceRange


@dataclass
class Identifier:
    name: str
    range: SourceRange


@dataclass
class Push:
    children: list[Node]
    range: SourceRange


@dataclass
class Evaluation:
    children: list[Node]
    range: SourceRange


@dataclass
class Program:
    statements: list[Node]
    range: SourceRange


Node = Literal|OpcodeRef|Identifier|Push|Evaluation


@dataclass
class ResolvedLiteral:
    """Bytes spliced into the bytecode as-is. The origin names what
        produced them, e.g. a variable, a script or an evaluation.
    """
    value: bytes
    range: SourceRange
    origin: str = field(default='literal')


@dataclass
class ResolvedOpcode:
    name: str
    opcode: int
    range: SourceRange


@dataclass
class ResolvedPush:
    children: list[ResolvedNode]
    range: SourceRange


ResolvedNode = ResolvedLiteral|ResolvedOpcode|ResolvedPush


@dataclass(frozen=True)
class ResolutionStep:
    """One entry of the resolution trace."""
    script_id: str
    kind: str
    name: str
    range: SourceRange
    value: bytes


@dataclass
class Keys:
    private_keys: dict[str, bytes] = field(default_factory=dict)
    public_keys: dict[str, bytes] = field(default_factory=dict)
    signatures: dict[str, bytes] = field(default_factory=dict)


@dataclass
class TransactionContext:
    """Fields of the transaction being built. The covered bytecode is
        the locking bytecode committed to by signatures; when omitted,
        the compiler derives it from the script's unlocks relation.
    """
    version: int = field(default=2)
    locktime: int = field(default=0)
    sequence_number: int = field(default=0xffffffff)
    covered_bytecode: bytes|None = field(default=None)


@dataclass
class CompilationData:
    """Runtime values for a single compilation, keyed by variable id."""
    keys: Keys = field(default_factory=Keys)
    wallet_data: dict[str, bytes] = field(default_factory=dict)
    address_data: dict[str, bytes] = field(default_factory=dict)
    current_block_height: int|None = field(default=None)
    current_block_time: int|None = field(default=None)
    transaction_context: TransactionContext|None = field(default=None)


@dataclass(frozen=True)
class ErrorReport:
    message: str
    range: SourceRange|None
    script_id: str|None
    error_type: ErrorType


@dataclass
class CompilationSuccess:
    bytecode: bytes
    success: bool = field(default=True, init=False)


@dataclass
class CompilationFailure:
    error_type: ErrorType
    errors: list[ErrorReport]
    success: bool = field(default=False, init=False)


@dataclass
class CompilationArtifact:
    """Everything produced by a compilation, for use by tooling."""
    script_id: str
    source: str|None = field(default=None)
    tokens: list[Token] = field(default_factory=list)
    ast: Program|None = field(default=None)
    resolved: list[ResolvedNode] = field(default_factory=list)
    trace: list[ResolutionStep] = field(default_factory=list)
    bytecode: bytes|None = field(default=None)
    error_type: ErrorType|None = field(default=None)
    errors: list[ErrorReport] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.bytecode is not None and not self.errors

    def result(self) -> CompilationSuccess|CompilationFailure:
        """Return the production result for this artifact."""
        if self.success:
            return CompilationSuccess(self.bytecode)
        return CompilationFailure(self.error_type, self.errors)


@dataclass
class EvaluationResult:
    """The outcome of running bytecode on a virtual machine. The stack
        is listed bottom first.
    """
    success: bool
    stack: list[bytes] = field(default_factory=list)
    error: str|None = field(default=None)


@dataclass
class Tape:
    """Class for reading the byte code of the script."""
    data: bytes
    pointer: int = field(default=0)
    conditions: list[bool] = field(default_factory=list)

    def read(self, size: int, move_pointer: bool = True) -> bytes:
        """Read symbols from the data."""
        sert(self.pointer + size <= len(self.data),
            'cannot read that many bytes')
        data = self.data[self.pointer:self.pointer+size]

        if move_pointer:
            self.pointer += size

        return data

    def executing(self) -> bool:
        """Return whether every enclosing conditional branch is taken."""
        return all(self.conditions)

    def has_terminated(self) -> bool:
        """Return whether or not the tape has terminated."""
        return self.pointer >= len(self.data)


class Stack:
    """Class to implement a Stack of bytes items."""
    deque: deque[bytes]
    max_items: int
    max_item_size: int

    def __init__(self, max_items: int = 1000, max_item_size: int = 520) -> None:
        """Initialize an empty Stack."""
        self.max_items = max_items
        self.max_item_size = max_item_size
        self.deque = deque()

    def get(self) -> bytes:
        """Get the top item of the Stack. Raises ScriptExecutionError if
            the Stack is empty.
        """
        sert(len(self.deque) > 0, 'cannot read from an empty Stack')
        return self.deque.pop()

    def put(self, item: bytes) -> None:
        """Put an item onto the Stack. Raises ScriptExecutionError if
            the item is too large or if the Stack is full; raises
            TypeError if the item is not bytes.
        """
        tert(type(item) is bytes, 'Stack item must be bytes')
        sert(len(item) <= self.max_item_size, 'Stack item size too large')
        sert(len(self.deque) < self.max_items, 'cannot put onto full Stack')
        self.deque.append(item)

    def peek(self, index: int = 0) -> bytes:
        """Returns the item of the stack at the given depth without
            removing it.
        """
        sert(0 <= index < len(self.deque), 'Stack index out of range')
        return self.deque[len(self.deque) - index - 1]

    def remove(self, index: int) -> bytes:
        """Remove and return the item at the given depth."""
        item = self.peek(index)
        del self.deque[len(self.deque) - index - 1]
        return item

    def __len__(self) -> int:
        """Return the current number of items in the Stack."""
        return len(self.deque)

    def list(self) -> list:
        """Returns a list containing the Stack items, bottom first."""
        return list(self.deque)
