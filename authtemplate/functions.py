from __future__ import annotations
from .classes import EvaluationResult, Tape, Stack
from .errors import ScriptExecutionError, tert, vert, sert
from hashlib import sha1, sha256
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from typing import Callable
import hashlib


def int_to_script_number(number: int) -> bytes:
    """Convert from arbitrarily large signed int to the minimal script
        number encoding: little-endian magnitude with the sign in the
        high bit of the last byte.
    """
    tert(type(number) is int, 'number must be int')
    if number == 0:
        return b''
    negative = number < 0
    magnitude = abs(number)
    encoded = bytearray(magnitude.to_bytes((magnitude.bit_length() + 7) // 8, 'little'))

    if encoded[-1] & 0x80:
        # the top bit is taken by the magnitude, so the sign needs a byte
        encoded.append(0x80 if negative else 0x00)
    elif negative:
        encoded[-1] |= 0x80

    return bytes(encoded)

def script_number_to_int(number: bytes, max_length: int = 4,
                         require_minimal: bool = True) -> int:
    """Convert from a script number to a signed int. Raises
        ScriptExecutionError if the encoding is too long or, when
        require_minimal is set, not minimally encoded.
    """
    tert(type(number) is bytes, 'number must be bytes')
    sert(len(number) <= max_length,
         f'script number exceeds {max_length} bytes: 0x{number.hex()}')
    if not number:
        return 0
    if require_minimal:
        sert(number[-1] & 0x7f or (len(number) > 1 and number[-2] & 0x80),
             f'script number is not minimally encoded: 0x{number.hex()}')
    magnitude = int.from_bytes(number[:-1] + bytes([number[-1] & 0x7f]), 'little')
    return -magnitude if number[-1] & 0x80 else magnitude

def bytes_to_bool(val: bytes) -> bool:
    """Return True if any bit is set, ignoring a sign bit on the last
        byte (negative zero is False).
    """
    for i, byte in enumerate(val):
        if byte != 0:
            return not (i == len(val) - 1 and byte == 0x80)
    return False

def bool_to_bytes(val: bool) -> bytes:
    return b'\x01' if val else b''

def _pop_number(stack: Stack) -> int:
    return script_number_to_int(stack.get())

def _put_number(stack: Stack, number: int) -> None:
    stack.put(int_to_script_number(number))


def OP_0(tape: Tape, stack: Stack, cache: dict) -> None:
    """Put an empty item onto the stack."""
    stack.put(b'')

def _make_push_bytes(size: int) -> Callable:
    def push_bytes(tape: Tape, stack: Stack, cache: dict) -> None:
        stack.put(tape.read(size))
    push_bytes.__name__ = f'OP_PUSHBYTES_{size}'
    push_bytes.__doc__ = f'Read the next {size} bytes from the tape and put them onto the stack.'
    return push_bytes

def OP_PUSHDATA_1(tape: Tape, stack: Stack, cache: dict) -> None:
    """Read a 1-byte length from the tape, then put that many bytes
        from the tape onto the stack.
    """
    size = int.from_bytes(tape.read(1), 'little')
    stack.put(tape.read(size))

def OP_PUSHDATA_2(tape: Tape, stack: Stack, cache: dict) -> None:
    """Read a 2-byte little-endian length from the tape, then put that
        many bytes from the tape onto the stack.
    """
    size = int.from_bytes(tape.read(2), 'little')
    stack.put(tape.read(size))

def OP_PUSHDATA_4(tape: Tape, stack: Stack, cache: dict) -> None:
    """Read a 4-byte little-endian length from the tape, then put that
        many bytes from the tape onto the stack.
    """
    size = int.from_bytes(tape.read(4), 'little')
    stack.put(tape.read(size))

def OP_1NEGATE(tape: Tape, stack: Stack, cache: dict) -> None:
    """Put the script number -1 onto the stack."""
    _put_number(stack, -1)

def _make_push_number(number: int) -> Callable:
    def push_number(tape: Tape, stack: Stack, cache: dict) -> None:
        _put_number(stack, number)
    push_number.__name__ = f'OP_{number}'
    push_number.__doc__ = f'Put the script number {number} onto the stack.'
    return push_number

def NOP(tape: Tape, stack: Stack, cache: dict) -> None:
    """Do nothing."""
    ...

def _make_failure(reason: str) -> Callable:
    def fail(tape: Tape, stack: Stack, cache: dict) -> None:
        sert(False, reason)
    return fail

def OP_IF(tape: Tape, stack: Stack, cache: dict) -> None:
    """Open a conditional branch. When executing, pull an item from the
        stack and take the branch if it is truthy.
    """
    value = False
    if tape.executing():
        value = bytes_to_bool(stack.get())
    tape.conditions.append(value)

def OP_NOTIF(tape: Tape, stack: Stack, cache: dict) -> None:
    """Like OP_IF, but takes the branch if the item is falsy."""
    value = False
    if tape.executing():
        value = not bytes_to_bool(stack.get())
    tape.conditions.append(value)

def OP_ELSE(tape: Tape, stack: Stack, cache: dict) -> None:
    """Invert the innermost conditional branch."""
    sert(len(tape.conditions) > 0, 'OP_ELSE without OP_IF')
    tape.conditions[-1] = not tape.conditions[-1]

def OP_ENDIF(tape: Tape, stack: Stack, cache: dict) -> None:
    """Close the innermost conditional branch."""
    sert(len(tape.conditions) > 0, 'OP_ENDIF without OP_IF')
    tape.conditions.pop()

def OP_VERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a value from the stack; evaluate it as a bool; and raise a
        ScriptExecutionError if it is False.
    """
    sert(bytes_to_bool(stack.get()), 'OP_VERIFY check failed')

def OP_RETURN(tape: Tape, stack: Stack, cache: dict) -> None:
    """End the script in failure."""
    sert(False, 'OP_RETURN called')

def OP_TOALTSTACK(tape: Tape, stack: Stack, cache: dict) -> None:
    cache['alt_stack'].put(stack.get())

def OP_FROMALTSTACK(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.put(cache['alt_stack'].get())

def OP_2DROP(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.get()
    stack.get()

def OP_2DUP(tape: Tape, stack: Stack, cache: dict) -> None:
    a, b = stack.peek(1), stack.peek(0)
    stack.put(a)
    stack.put(b)

def OP_3DUP(tape: Tape, stack: Stack, cache: dict) -> None:
    a, b, c = stack.peek(2), stack.peek(1), stack.peek(0)
    stack.put(a)
    stack.put(b)
    stack.put(c)

def OP_2OVER(tape: Tape, stack: Stack, cache: dict) -> None:
    a, b = stack.peek(3), stack.peek(2)
    stack.put(a)
    stack.put(b)

def OP_2ROT(tape: Tape, stack: Stack, cache: dict) -> None:
    a, b = stack.remove(5), stack.remove(4)
    stack.put(a)
    stack.put(b)

def OP_2SWAP(tape: Tape, stack: Stack, cache: dict) -> None:
    a, b = stack.remove(3), stack.remove(2)
    stack.put(a)
    stack.put(b)

def OP_IFDUP(tape: Tape, stack: Stack, cache: dict) -> None:
    """Duplicate the top item if it is truthy."""
    if bytes_to_bool(stack.peek()):
        stack.put(stack.peek())

def OP_DEPTH(tape: Tape, stack: Stack, cache: dict) -> None:
    """Put the number of stack items onto the stack."""
    _put_number(stack, len(stack))

def OP_DROP(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.get()

def OP_DUP(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.put(stack.peek())

def OP_NIP(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.remove(1)

def OP_OVER(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.put(stack.peek(1))

def OP_PICK(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull an index from the stack and copy the item at that depth
        onto the top of the stack.
    """
    index = _pop_number(stack)
    sert(index >= 0, 'OP_PICK index must not be negative')
    stack.put(stack.peek(index))

def OP_ROLL(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull an index from the stack and move the item at that depth to
        the top of the stack.
    """
    index = _pop_number(stack)
    sert(index >= 0, 'OP_ROLL index must not be negative')
    stack.put(stack.remove(index))

def OP_ROT(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.put(stack.remove(2))

def OP_SWAP(tape: Tape, stack: Stack, cache: dict) -> None:
    stack.put(stack.remove(1))

def OP_TUCK(tape: Tape, stack: Stack, cache: dict) -> None:
    top, second = stack.get(), stack.get()
    stack.put(top)
    stack.put(second)
    stack.put(top)

def OP_CAT(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull 2 items from the stack and put their concatenation back."""
    second, first = stack.get(), stack.get()
    stack.put(first + second)

def OP_SPLIT(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull an index and an item from the stack; put the two halves of
        the item split at the index back onto the stack.
    """
    index = _pop_number(stack)
    item = stack.get()
    sert(0 <= index <= len(item), 'OP_SPLIT index out of range')
    stack.put(item[:index])
    stack.put(item[index:])

def OP_NUM2BIN(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a size and a number from the stack; put the number padded
        to that size back onto the stack.
    """
    size = _pop_number(stack)
    item = stack.get()
    sert(0 <= size <= stack.max_item_size, 'OP_NUM2BIN size out of range')
    number = int_to_script_number(
        script_number_to_int(item, max_length=len(item), require_minimal=False)
    )
    sert(len(number) <= size, 'OP_NUM2BIN size too small for number')
    if not number:
        stack.put(bytes(size))
        return
    sign = number[-1] & 0x80
    padded = bytearray(number[:-1] + bytes([number[-1] & 0x7f]))
    padded.extend(bytes(size - len(padded)))
    padded[-1] |= sign
    stack.put(bytes(padded))

def OP_BIN2NUM(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull an item from the stack and put it back minimally encoded."""
    item = stack.get()
    number = script_number_to_int(item, max_length=len(item), require_minimal=False)
    encoded = int_to_script_number(number)
    sert(len(encoded) <= 4, 'OP_BIN2NUM result exceeds 4 bytes')
    stack.put(encoded)

def OP_SIZE(tape: Tape, stack: Stack, cache: dict) -> None:
    """Put the size of the top item onto the stack."""
    _put_number(stack, len(stack.peek()))

def _bitwise(stack: Stack, operation: Callable[[int, int], int]) -> None:
    second, first = stack.get(), stack.get()
    sert(len(first) == len(second), 'bitwise operands must be the same size')
    stack.put(bytes(operation(a, b) for a, b in zip(first, second)))

def OP_AND(tape: Tape, stack: Stack, cache: dict) -> None:
    _bitwise(stack, lambda a, b: a & b)

def OP_OR(tape: Tape, stack: Stack, cache: dict) -> None:
    _bitwise(stack, lambda a, b: a | b)

def OP_XOR(tape: Tape, stack: Stack, cache: dict) -> None:
    _bitwise(stack, lambda a, b: a ^ b)

def OP_EQUAL(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull 2 items from the stack; compare them; put the bool result
        onto the stack.
    """
    stack.put(bool_to_bytes(stack.get() == stack.get()))

def OP_EQUALVERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    """Runs OP_EQUAL then OP_VERIFY."""
    OP_EQUAL(tape, stack, cache)
    sert(bytes_to_bool(stack.get()), 'OP_EQUALVERIFY check failed')

def _make_unary(operation: Callable[[int], int]) -> Callable:
    def unary(tape: Tape, stack: Stack, cache: dict) -> None:
        _put_number(stack, operation(_pop_number(stack)))
    return unary

def _make_binary(operation: Callable[[int, int], int]) -> Callable:
    def binary(tape: Tape, stack: Stack, cache: dict) -> None:
        second, first = _pop_number(stack), _pop_number(stack)
        _put_number(stack, operation(first, second))
    return binary

def OP_DIV(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull 2 numbers from the stack and put their quotient, truncated
        toward zero, back onto the stack.
    """
    divisor, dividend = _pop_number(stack), _pop_number(stack)
    sert(divisor != 0, 'division by zero')
    quotient = abs(dividend) // abs(divisor)
    _put_number(stack, quotient if (dividend < 0) == (divisor < 0) else -quotient)

def OP_MOD(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull 2 numbers from the stack and put the remainder, with the
        sign of the dividend, back onto the stack.
    """
    divisor, dividend = _pop_number(stack), _pop_number(stack)
    sert(divisor != 0, 'modulo by zero')
    remainder = abs(dividend) % abs(divisor)
    _put_number(stack, -remainder if dividend < 0 else remainder)

def OP_NUMEQUALVERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    second, first = _pop_number(stack), _pop_number(stack)
    sert(first == second, 'OP_NUMEQUALVERIFY check failed')

def OP_WITHIN(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a max, a min and a number; put whether min <= number < max."""
    maximum, minimum, number = _pop_number(stack), _pop_number(stack), _pop_number(stack)
    _put_number(stack, int(minimum <= number < maximum))

def _make_hash(function: Callable[[bytes], bytes]) -> Callable:
    def hash_item(tape: Tape, stack: Stack, cache: dict) -> None:
        stack.put(function(stack.get()))
    return hash_item

def _ripemd160(data: bytes) -> bytes:
    try:
        return hashlib.new('ripemd160', data).digest()
    except ValueError:
        raise ScriptExecutionError('ripemd160 is not available on this platform') from None

def OP_CHECKDATASIG(tape: Tape, stack: Stack, cache: dict) -> None:
    """Pull a public key, a message and a signature from the stack;
        verify the ed25519 signature over the sha256 of the message; put
        the bool result onto the stack. An empty signature is False.
    """
    public_key, message, signature = stack.get(), stack.get(), stack.get()
    if not signature:
        stack.put(bool_to_bytes(False))
        return
    sert(len(public_key) == 32, 'OP_CHECKDATASIG public key must be 32 bytes')
    sert(len(signature) == 64, 'OP_CHECKDATASIG signature must be 64 bytes')
    try:
        VerifyKey(public_key).verify(sha256(message).digest(), signature)
    except BadSignatureError:
        sert(False, 'OP_CHECKDATASIG signature is invalid')
    stack.put(bool_to_bytes(True))

def OP_CHECKDATASIGVERIFY(tape: Tape, stack: Stack, cache: dict) -> None:
    """Runs OP_CHECKDATASIG then OP_VERIFY."""
    OP_CHECKDATASIG(tape, stack, cache)
    OP_VERIFY(tape, stack, cache)


_needs_transaction = 'requires a transaction and cannot run in an evaluation'

opcodes = [('OP_0', OP_0)]
opcodes.extend((f'OP_PUSHBYTES_{i}', _make_push_bytes(i)) for i in range(1, 76))
opcodes.extend([
    ('OP_PUSHDATA_1', OP_PUSHDATA_1),
    ('OP_PUSHDATA_2', OP_PUSHDATA_2),
    ('OP_PUSHDATA_4', OP_PUSHDATA_4),
    ('OP_1NEGATE', OP_1NEGATE),
    ('OP_RESERVED', _make_failure('OP_RESERVED executed')),
])
opcodes.extend((f'OP_{i}', _make_push_number(i)) for i in range(1, 17))
opcodes.extend([
    ('OP_NOP', NOP),
    ('OP_VER', _make_failure('OP_VER executed')),
    ('OP_IF', OP_IF),
    ('OP_NOTIF', OP_NOTIF),
    ('OP_VERIF', _make_failure('OP_VERIF executed')),
    ('OP_VERNOTIF', _make_failure('OP_VERNOTIF executed')),
    ('OP_ELSE', OP_ELSE),
    ('OP_ENDIF', OP_ENDIF),
    ('OP_VERIFY', OP_VERIFY),
    ('OP_RETURN', OP_RETURN),
    ('OP_TOALTSTACK', OP_TOALTSTACK),
    ('OP_FROMALTSTACK', OP_FROMALTSTACK),
    ('OP_2DROP', OP_2DROP),
    ('OP_2DUP', OP_2DUP),
    ('OP_3DUP', OP_3DUP),
    ('OP_2OVER', OP_2OVER),
    ('OP_2ROT', OP_2ROT),
    ('OP_2SWAP', OP_2SWAP),
    ('OP_IFDUP', OP_IFDUP),
    ('OP_DEPTH', OP_DEPTH),
    ('OP_DROP', OP_DROP),
    ('OP_DUP', OP_DUP),
    ('OP_NIP', OP_NIP),
    ('OP_OVER', OP_OVER),
    ('OP_PICK', OP_PICK),
    ('OP_ROLL', OP_ROLL),
    ('OP_ROT', OP_ROT),
    ('OP_SWAP', OP_SWAP),
    ('OP_TUCK', OP_TUCK),
    ('OP_CAT', OP_CAT),
    ('OP_SPLIT', OP_SPLIT),
    ('OP_NUM2BIN', OP_NUM2BIN),
    ('OP_BIN2NUM', OP_BIN2NUM),
    ('OP_SIZE', OP_SIZE),
    ('OP_INVERT', _make_failure('OP_INVERT is disabled')),
    ('OP_AND', OP_AND),
    ('OP_OR', OP_OR),
    ('OP_XOR', OP_XOR),
    ('OP_EQUAL', OP_EQUAL),
    ('OP_EQUALVERIFY', OP_EQUALVERIFY),
    ('OP_RESERVED1', _make_failure('OP_RESERVED1 executed')),
    ('OP_RESERVED2', _make_failure('OP_RESERVED2 executed')),
    ('OP_1ADD', _make_unary(lambda a: a + 1)),
    ('OP_1SUB', _make_unary(lambda a: a - 1)),
    ('OP_2MUL', _make_failure('OP_2MUL is disabled')),
    ('OP_2DIV', _make_failure('OP_2DIV is disabled')),
    ('OP_NEGATE', _make_unary(lambda a: -a)),
    ('OP_ABS', _make_unary(abs)),
    ('OP_NOT', _make_unary(lambda a: int(a == 0))),
    ('OP_0NOTEQUAL', _make_unary(lambda a: int(a != 0))),
    ('OP_ADD', _make_binary(lambda a, b: a + b)),
    ('OP_SUB', _make_binary(lambda a, b: a - b)),
    ('OP_MUL', _make_failure('OP_MUL is disabled')),
    ('OP_DIV', OP_DIV),
    ('OP_MOD', OP_MOD),
    ('OP_LSHIFT', _make_failure('OP_LSHIFT is disabled')),
    ('OP_RSHIFT', _make_failure('OP_RSHIFT is disabled')),
    ('OP_BOOLAND', _make_binary(lambda a, b: int(a != 0 and b != 0))),
    ('OP_BOOLOR', _make_binary(lambda a, b: int(a != 0 or b != 0))),
    ('OP_NUMEQUAL', _make_binary(lambda a, b: int(a == b))),
    ('OP_NUMEQUALVERIFY', OP_NUMEQUALVERIFY),
    ('OP_NUMNOTEQUAL', _make_binary(lambda a, b: int(a != b))),
    ('OP_LESSTHAN', _make_binary(lambda a, b: int(a < b))),
    ('OP_GREATERTHAN', _make_binary(lambda a, b: int(a > b))),
    ('OP_LESSTHANOREQUAL', _make_binary(lambda a, b: int(a <= b))),
    ('OP_GREATERTHANOREQUAL', _make_binary(lambda a, b: int(a >= b))),
    ('OP_MIN', _make_binary(min)),
    ('OP_MAX', _make_binary(max)),
    ('OP_WITHIN', OP_WITHIN),
    ('OP_RIPEMD160', _make_hash(_ripemd160)),
    ('OP_SHA1', _make_hash(lambda d: sha1(d).digest())),
    ('OP_SHA256', _make_hash(lambda d: sha256(d).digest())),
    ('OP_HASH160', _make_hash(lambda d: _ripemd160(sha256(d).digest()))),
    ('OP_HASH256', _make_hash(lambda d: sha256(sha256(d).digest()).digest())),
    ('OP_CODESEPARATOR', _make_failure(f'OP_CODESEPARATOR {_needs_transaction}')),
    ('OP_CHECKSIG', _make_failure(f'OP_CHECKSIG {_needs_transaction}')),
    ('OP_CHECKSIGVERIFY', _make_failure(f'OP_CHECKSIGVERIFY {_needs_transaction}')),
    ('OP_CHECKMULTISIG', _make_failure(f'OP_CHECKMULTISIG {_needs_transaction}')),
    ('OP_CHECKMULTISIGVERIFY', _make_failure(f'OP_CHECKMULTISIGVERIFY {_needs_transaction}')),
    ('OP_NOP1', NOP),
    ('OP_CHECKLOCKTIMEVERIFY', _make_failure(f'OP_CHECKLOCKTIMEVERIFY {_needs_transaction}')),
    ('OP_CHECKSEQUENCEVERIFY', _make_failure(f'OP_CHECKSEQUENCEVERIFY {_needs_transaction}')),
])
opcodes.extend((f'OP_NOP{i}', NOP) for i in range(4, 11))
opcodes.extend([
    ('OP_CHECKDATASIG', OP_CHECKDATASIG),
    ('OP_CHECKDATASIGVERIFY', OP_CHECKDATASIGVERIFY),
])
opcodes: dict[int, tuple[str, Callable]] = {x: opcodes[x] for x in range(len(opcodes))}

opcodes_inverse = {
    opcodes[key][0]: (key, opcodes[key][1]) for key in opcodes
}

OP_PUSHDATA_1_CODE = opcodes_inverse['OP_PUSHDATA_1'][0]
OP_PUSHDATA_2_CODE = opcodes_inverse['OP_PUSHDATA_2'][0]
OP_PUSHDATA_4_CODE = opcodes_inverse['OP_PUSHDATA_4'][0]
OP_1NEGATE_CODE = opcodes_inverse['OP_1NEGATE'][0]
OP_1_CODE = opcodes_inverse['OP_1'][0]
_conditional_codes = range(opcodes_inverse['OP_IF'][0], opcodes_inverse['OP_ENDIF'][0] + 1)


def opcode_map() -> dict[str, int]:
    """Return the mapping of opcode names to bytes for compilation."""
    return {name: code for name, (code, _) in opcodes_inverse.items()}

def _skip_push(tape: Tape, op_code: int) -> None:
    """Move the tape past the data of a push op without executing it."""
    if op_code < OP_PUSHDATA_1_CODE:
        tape.read(op_code)
    elif op_code <= OP_PUSHDATA_4_CODE:
        width = {OP_PUSHDATA_1_CODE: 1, OP_PUSHDATA_2_CODE: 2, OP_PUSHDATA_4_CODE: 4}[op_code]
        tape.read(int.from_bytes(tape.read(width), 'little'))

def run_tape(tape: Tape, stack: Stack, cache: dict) -> None:
    """Run the given tape using the stack and cache."""
    while not tape.has_terminated():
        op_code = int.from_bytes(tape.read(1), 'big')
        sert(op_code in opcodes, f'unknown opcode 0x{op_code:02x}')

        if not tape.executing() and op_code not in _conditional_codes:
            _skip_push(tape, op_code)
            continue

        opcodes[op_code][1](tape, stack, cache)

    sert(not tape.conditions, 'unterminated conditional: missing OP_ENDIF')

def run_script(script: bytes) -> tuple[Tape, Stack, dict]:
    """Run the given script byte code. Returns a tape, stack, and dict."""
    tert(type(script) is bytes, 'script must be bytes')
    tape = Tape(script)
    stack = Stack()
    cache = {'alt_stack': Stack()}
    run_tape(tape, stack, cache)
    return (tape, stack, cache)


class StackMachine:
    """The default evaluation machine: runs bytecode on the common
        instruction set without any transaction context.
    """
    def evaluate(self, bytecode: bytes) -> EvaluationResult:
        """Run the bytecode, reporting any ScriptExecutionError as an
            unsuccessful result.
        """
        vert(type(bytecode) is bytes, 'bytecode must be bytes')
        try:
            _, stack, _ = run_script(bytecode)
        except ScriptExecutionError as e:
            return EvaluationResult(False, [], str(e))
        return EvaluationResult(True, stack.list())
