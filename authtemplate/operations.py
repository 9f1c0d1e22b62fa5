from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from hashlib import sha256
from nacl.signing import SigningKey
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from .classes import CompilationData, TransactionContext
from .errors import eert, rert
from .functions import int_to_script_number
import inspect

if TYPE_CHECKING:
    from .compiler import CompilationEnvironment


class Capability(Enum):
    KEY = 'key'
    SIGNATURE = 'signature'
    HASH = 'hash'
    WALLET_DATA = 'wallet_data'
    TRANSACTION_CONTEXT = 'transaction_context'
    SCRIPT = 'script'


# variable type -> operation name -> capability; None is the bare variable
variable_operations: dict[str, dict[str|None, Capability]] = {
    'Key': {
        'public_key': Capability.KEY,
        'public_key_hash': Capability.HASH,
        'signature': Capability.SIGNATURE,
        'data_signature': Capability.SIGNATURE,
    },
    'WalletData': {
        None: Capability.WALLET_DATA,
        'hash': Capability.HASH,
    },
    'AddressData': {
        None: Capability.WALLET_DATA,
        'hash': Capability.HASH,
    },
    'CurrentBlockHeight': {
        None: Capability.TRANSACTION_CONTEXT,
    },
    'CurrentBlockTime': {
        None: Capability.TRANSACTION_CONTEXT,
    },
    'TransactionContext': {
        'locktime': Capability.TRANSACTION_CONTEXT,
        'sequence_number': Capability.TRANSACTION_CONTEXT,
        'version': Capability.TRANSACTION_CONTEXT,
    },
}

_parameterized_operations = ('signature', 'data_signature')

signing_types = {
    'all_outputs': 0x41,
    'all_outputs_single_input': 0xc1,
    'corresponding_output': 0x43,
    'corresponding_output_single_input': 0xc3,
    'no_outputs': 0x42,
    'no_outputs_single_input': 0xc2,
}


@dataclass
class OperationRequest:
    """Everything an operation may use to produce a variable's bytes.
        The covered bytecode and message are prepared by the resolver
        for signature operations.
    """
    identifier: str
    variable_id: str
    operation: str|None
    definition: dict
    entity_id: str|None
    data: CompilationData
    environment: CompilationEnvironment
    covered_bytecode: bytes|None = field(default=None)
    message: bytes|None = field(default=None)

    @property
    def head(self) -> str|None:
        """The operation name without its parameter."""
        return None if self.operation is None else self.operation.split('.')[0]

    @property
    def parameter(self) -> str|None:
        """The operation parameter, e.g. the signing type of a signature."""
        if self.operation is None or '.' not in self.operation:
            return None
        return self.operation.split('.', 1)[1]

    def owner(self) -> str:
        """Describe the owning entity for error messages."""
        return f' (owned by entity "{self.entity_id}")' if self.entity_id else ''


Operation = Callable[[OperationRequest], bytes|Awaitable[bytes]]


def select_capability(identifier: str, definition: dict, operation: str|None) -> Capability:
    """Select the capability which resolves the variable operation.
        Raises ResolutionError for unknown variable types, operations or
        operation parameters.
    """
    variable_type = definition.get('type')
    rert(variable_type in variable_operations,
         f'Identifier "{identifier}" refers to a variable of unknown type '
         f'"{variable_type}".')
    supported = variable_operations[variable_type]
    head, _, parameter = (operation or '').partition('.')
    head = head or None
    names = ', '.join(sorted(str(n) for n in supported if n is not None))

    rert(head in supported,
         f'Identifier "{identifier}" refers to a {variable_type} variable, '
         + (f'but no operation was given; supported operations: {names}.'
            if head is None else
            f'but "{head}" is not a supported operation; supported '
            f'operations: {names or "none"}.'))

    if head in _parameterized_operations:
        rert(parameter != '',
             f'Identifier "{identifier}" must specify a parameter for '
             f'"{head}", e.g. "{identifier}.{_example_parameter(head)}".')
        if head == 'signature':
            rert(parameter in signing_types,
                 f'Unknown signing type "{parameter}" in "{identifier}"; '
                 f'supported: {", ".join(signing_types)}.')
    else:
        rert(parameter == '',
             f'Operation "{head}" of identifier "{identifier}" does not take '
             f'a parameter.')

    return supported[head]

def _example_parameter(head: str) -> str:
    return 'all_outputs' if head == 'signature' else 'script_id'

def _then(value: Any, function: Callable[[Any], Any]) -> Any:
    """Apply the function to the value, awaiting the value first if it
        is awaitable. Lets the default operations work with both
        synchronous and asynchronous capabilities.
    """
    if inspect.isawaitable(value):
        async def chain():
            result = function(await value)
            if inspect.isawaitable(result):
                result = await result
            return result
        return chain()
    return function(value)

def _require(capability: Any, name: str, request: OperationRequest) -> Any:
    rert(capability is not None,
         f'Identifier "{request.identifier}" requires the {name} capability, '
         'but it is not available in this compilation environment.')
    return capability

def _private_key(request: OperationRequest) -> bytes:
    private_keys = request.data.keys.private_keys
    rert(request.variable_id in private_keys,
         f'Identifier "{request.identifier}" requires a private key for '
         f'"{request.variable_id}"{request.owner()}, but none was provided '
         'in the compilation data.')
    return private_keys[request.variable_id]

def _uint32(value: int, name: str) -> bytes:
    eert(0 <= value <= 0xffffffff, f'{name} must be a 32-bit unsigned integer, not {value}.')
    return value.to_bytes(4, 'little')

def signing_serialization(context: TransactionContext, covered_bytecode: bytes,
                          signing_type: int) -> bytes:
    """Serialize the parts of the transaction committed to by a
        signature of the given signing type.
    """
    return b''.join([
        _uint32(context.version, 'version'),
        _uint32(context.sequence_number, 'sequence_number'),
        _uint32(len(covered_bytecode), 'covered bytecode length'),
        covered_bytecode,
        _uint32(context.locktime, 'locktime'),
        _uint32(signing_type, 'signing type'),
    ])

def public_key_operation(request: OperationRequest) -> bytes|Awaitable[bytes]:
    """Resolve a Key variable to its public key, using a provided public
        key if present or deriving one from the private key.
    """
    public_keys = request.data.keys.public_keys
    if request.variable_id in public_keys:
        return public_keys[request.variable_id]
    rert(request.variable_id in request.data.keys.private_keys,
         f'Identifier "{request.identifier}" refers to a public key, but no '
         f'public or private key for "{request.variable_id}"{request.owner()} '
         'was provided in the compilation data.')
    signer = _require(request.environment.ed25519, 'ed25519', request)
    return signer.derive_public_key(_private_key(request))

def wallet_data_operation(request: OperationRequest) -> bytes:
    """Resolve a WalletData or AddressData variable to its value."""
    if request.definition['type'] == 'AddressData':
        values = request.data.address_data
    else:
        values = request.data.wallet_data
    rert(request.variable_id in values,
         f'Identifier "{request.identifier}" refers to a '
         f'{request.definition["type"]} variable, but no value for '
         f'"{request.variable_id}"{request.owner()} was provided in the '
         'compilation data.')
    return values[request.variable_id]

def hash_operation(request: OperationRequest) -> bytes|Awaitable[bytes]:
    """Resolve the sha256 hash of a public key or of wallet data."""
    hasher = _require(request.environment.sha256, 'sha256', request)
    if request.definition['type'] == 'Key':
        value = public_key_operation(request)
    else:
        value = wallet_data_operation(request)
    return _then(value, hasher)

def signature_operation(request: OperationRequest) -> bytes|Awaitable[bytes]:
    """Resolve a signature. Provided signatures (keyed by the full
        identifier) are used as-is; otherwise the private key signs the
        double sha256 of the signing serialization, and the signing type
        byte is appended. Data signatures sign the sha256 of the
        compiled bytecode of the named script.
    """
    provided = request.data.keys.signatures
    if request.identifier in provided:
        return provided[request.identifier]

    private_key = _private_key(request)
    signer = _require(request.environment.ed25519, 'ed25519', request)
    hasher = _require(request.environment.sha256, 'sha256', request)

    if request.head == 'data_signature':
        return _then(
            hasher(request.message),
            lambda digest: signer.sign(private_key, digest)
        )

    context = request.data.transaction_context
    rert(context is not None,
         f'Identifier "{request.identifier}" requires a transaction context, '
         'but none was provided in the compilation data.')
    signing_type = signing_types[request.parameter]
    serialization = signing_serialization(
        context, request.covered_bytecode, signing_type
    )
    digest = _then(hasher(serialization), hasher)
    signature = _then(digest, lambda d: signer.sign(private_key, d))
    return _then(signature, lambda s: s + bytes([signing_type]))

def transaction_context_operation(request: OperationRequest) -> bytes:
    """Resolve block and transaction fields from the compilation data.
        Block heights and transaction fields are script numbers; block
        times are 4-byte little-endian timestamps.
    """
    data = request.data

    match request.definition['type']:
        case 'CurrentBlockHeight':
            rert(data.current_block_height is not None,
                 f'Identifier "{request.identifier}" requires the current '
                 'block height, but none was provided in the compilation data.')
            return int_to_script_number(data.current_block_height)
        case 'CurrentBlockTime':
            rert(data.current_block_time is not None,
                 f'Identifier "{request.identifier}" requires the current '
                 'block time, but none was provided in the compilation data.')
            return _uint32(data.current_block_time, 'current block time')
        case _:
            rert(data.transaction_context is not None,
                 f'Identifier "{request.identifier}" requires a transaction '
                 'context, but none was provided in the compilation data.')
            return int_to_script_number(
                getattr(data.transaction_context, request.head)
            )


default_operations: dict[Capability, Operation] = {
    Capability.KEY: public_key_operation,
    Capability.SIGNATURE: signature_operation,
    Capability.HASH: hash_operation,
    Capability.WALLET_DATA: wallet_data_operation,
    Capability.TRANSACTION_CONTEXT: transaction_context_operation,
}


class Ed25519:
    """Key derivation and signing over ed25519 using PyNaCl. Private
        keys are 32-byte seeds.
    """
    def derive_public_key(self, private_key: bytes) -> bytes:
        return bytes(SigningKey(private_key).verify_key)

    def sign(self, private_key: bytes, message: bytes) -> bytes:
        return SigningKey(private_key).sign(message).signature


def sha256_digest(data: bytes) -> bytes:
    return sha256(data).digest()
