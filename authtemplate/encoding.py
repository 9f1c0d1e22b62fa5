from __future__ import annotations
from typing import Iterator
from .classes import (
    Literal,
    LiteralKind,
    ResolvedLiteral,
    ResolvedNode,
    ResolvedOpcode,
    ResolvedPush,
)
from .errors import EncodingError, eert
from .functions import (
    int_to_script_number,
    OP_1_CODE,
    OP_1NEGATE_CODE,
    OP_PUSHDATA_1_CODE,
    OP_PUSHDATA_2_CODE,
    OP_PUSHDATA_4_CODE,
)


def encode_literal(literal: Literal) -> bytes:
    """Encode a literal as the bytes it places in the bytecode. BigInt
        literals become minimal script numbers, hex literals their raw
        bytes, and UTF8 literals their UTF8 encoding. Raises
        EncodingError for odd-length hex or unencodable text.
    """
    match literal.kind:
        case LiteralKind.BIGINT:
            return int_to_script_number(literal.value)
        case LiteralKind.HEX:
            eert(len(literal.value) % 2 == 0,
                 f'Hex literal "0x{literal.value}" must have an even number '
                 f'of digits; found {len(literal.value)}.', literal.range)
            return bytes.fromhex(literal.value)
        case LiteralKind.UTF8:
            try:
                return literal.value.encode('utf-8')
            except UnicodeEncodeError as e:
                eert(False, f'UTF8 literal cannot be encoded: {e.reason}.',
                     literal.range)

def encode_data_push(data: bytes) -> bytes:
    """Encode the bytecode that pushes the data using the shortest
        canonical push. Raises EncodingError if the data is too large.
    """
    length = len(data)

    if length == 0:
        return b'\x00'
    if length == 1:
        if 1 <= data[0] <= 16:
            return bytes([OP_1_CODE - 1 + data[0]])
        if data[0] == 0x81:
            return bytes([OP_1NEGATE_CODE])
    if length < OP_PUSHDATA_1_CODE:
        return bytes([length]) + data
    if length <= 0xff:
        return bytes([OP_PUSHDATA_1_CODE, length]) + data
    if length <= 0xffff:
        return bytes([OP_PUSHDATA_2_CODE]) + length.to_bytes(2, 'little') + data

    eert(length <= 0xffffffff, f'Push of {length} bytes exceeds the maximum '
         'push size of 4294967295 bytes.')
    return bytes([OP_PUSHDATA_4_CODE]) + length.to_bytes(4, 'little') + data

def generate(nodes: list[ResolvedNode]) -> bytes:
    """Generate the bytecode for a sequence of resolved nodes. Opcodes
        and literals are emitted as-is; each push is generated innermost
        first and then minimally encoded.
    """
    # each frame holds the enclosing push, its remaining children, and
    # the code generated for them so far
    frames: list[tuple[ResolvedPush|None, Iterator[ResolvedNode], list[bytes]]] = [
        (None, iter(nodes), [])
    ]

    while True:
        push, pending, code = frames[-1]
        node = next(pending, None)

        if node is None:
            frames.pop()
            contents = b''.join(code)
            if push is None:
                return contents
            try:
                frames[-1][2].append(encode_data_push(contents))
            except EncodingError as e:
                raise e.locate(push.range, None)
            continue

        match node:
            case ResolvedOpcode(opcode=opcode):
                code.append(bytes([opcode]))
            case ResolvedLiteral(value=value):
                code.append(value)
            case ResolvedPush(children=children):
                frames.append((node, iter(children), []))
