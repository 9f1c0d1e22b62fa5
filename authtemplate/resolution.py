"""Identifier resolution, script composition and compile-time
    evaluation. Resolution is written as generators which yield an
    Invocation wherever an externally supplied capability (an operation
    or the virtual machine) must be called; the driver performs the call
    and sends the result back in. This lets one resolver serve both the
    synchronous and the asynchronous compiler.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Generator, Iterator
from .classes import (
    CompilationArtifact,
    CompilationData,
    Evaluation,
    EvaluationResult,
    Identifier,
    Literal,
    Node,
    OpcodeRef,
    Push,
    ResolutionStep,
    ResolvedLiteral,
    ResolvedNode,
    ResolvedOpcode,
    ResolvedPush,
)
from .encoding import encode_literal, generate
from .errors import (
    CompilerError,
    EvaluationExecutionError,
    ResolutionError,
    rert,
)
from .operations import Capability, OperationRequest, select_capability
from .parsing import parse, tokenize
import logging

if TYPE_CHECKING:
    from .compiler import CompilationEnvironment

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """A call to an external capability which the driver must perform."""
    function: Callable
    args: tuple


Resolution = Generator[Invocation, Any, Any]


def invoke(function: Callable, *args) -> Resolution:
    """Suspend resolution until the driver has called the function with
        the args; returns the call's result.
    """
    return (yield Invocation(function, args))


@dataclass
class ResolutionContext:
    """State carried down the resolution call chain. The path holds the
        ids of the scripts currently being compiled, root first.
    """
    environment: CompilationEnvironment
    data: CompilationData
    path: tuple[str, ...]
    trace: list[ResolutionStep]

    @property
    def script_id(self) -> str:
        return self.path[-1]

    @property
    def root_script_id(self) -> str:
        return self.path[0]

    def enter(self, script_id: str) -> ResolutionContext:
        return replace(self, path=(*self.path, script_id))

    def record(self, kind: str, name: str, node: Node, value: bytes) -> None:
        self.trace.append(ResolutionStep(self.script_id, kind, name, node.range, value))


def compile_script(script_id: str, context: ResolutionContext,
                   artifact: CompilationArtifact|None = None) -> Resolution:
    """Compile the script with the given id to bytecode. The context's
        path must already end with the script id. When an artifact is
        given, it receives the intermediate products.
    """
    try:
        rert(script_id in context.environment.scripts,
             f'Unknown script "{script_id}".')
        source = context.environment.scripts[script_id]
        tokens = tokenize(source)
        program = parse(tokens)

        if artifact is not None:
            artifact.source = source
            artifact.tokens = tokens
            artifact.ast = program

        resolved = yield from resolve_nodes(program.statements, context)

        if artifact is not None:
            artifact.resolved = resolved

        return generate(resolved)
    except CompilerError as e:
        raise e.locate(None, script_id)

def resolve_nodes(nodes: list[Node], context: ResolutionContext) -> Resolution:
    """Resolve a sequence of nodes in source order. Pushes keep their
        structure for the generator; evaluations are run and replaced by
        their result. Nesting is walked with an explicit stack, so depth
        is not bounded by the recursion limit.
    """
    # each frame holds the enclosing push or evaluation, its remaining
    # children, and the children resolved so far
    frames: list[tuple[Push|Evaluation|None, Iterator[Node], list[ResolvedNode]]] = [
        (None, iter(nodes), [])
    ]

    while True:
        container, pending, resolved = frames[-1]
        node = next(pending, None)

        if node is None:
            frames.pop()
            match container:
                case None:
                    return resolved
                case Push():
                    value = ResolvedPush(resolved, container.range)
                case Evaluation():
                    value = yield from evaluate(container, resolved, context)
            frames[-1][2].append(value)
            continue

        match node:
            case Literal():
                resolved.append(ResolvedLiteral(encode_literal(node), node.range))
            case OpcodeRef() | Identifier():
                resolved.append((yield from resolve_identifier(node, context)))
            case Push(children=children) | Evaluation(children=children):
                frames.append((node, iter(children), []))

def resolve_identifier(node: OpcodeRef|Identifier, context: ResolutionContext) -> Resolution:
    """Resolve an identifier to exactly one of an opcode, a variable or
        a script. Raises ResolutionError if it names none or several.
    """
    environment = context.environment
    name = node.name
    variable_id, _, operation = name.partition('.')

    try:
        matches = []
        if name in environment.opcodes:
            matches.append('opcode')
        if variable_id in environment.variables:
            matches.append('variable')
        if name in environment.scripts:
            matches.append('script')

        rert(len(matches) > 0, f'Unknown identifier "{name}".')
        rert(len(matches) == 1,
             f'Identifier "{name}" is ambiguous; it names more than one of: '
             f'{", ".join(matches)}.')

        match matches[0]:
            case 'opcode':
                opcode = environment.opcodes[name]
                context.record('opcode', name, node, bytes([opcode]))
                return ResolvedOpcode(name, opcode, node.range)
            case 'variable':
                value = yield from resolve_variable(
                    node, variable_id, operation or None, context
                )
                context.record('variable', name, node, value)
                return ResolvedLiteral(value, node.range, 'variable')
            case 'script':
                bytecode = yield from resolve_script(node, name, context)
                return ResolvedLiteral(bytecode, node.range, 'script')
    except CompilerError as e:
        raise e.locate(node.range, context.script_id)

def resolve_script(node: Node, script_id: str, context: ResolutionContext) -> Resolution:
    """Compile a referenced script and return its bytecode. Raises
        ResolutionError if the reference closes a cycle or if the
        referenced script fails to compile.
    """
    rert(script_id not in context.path,
         'Circular script reference: '
         f'{" -> ".join((*context.path, script_id))}.')
    logger.debug('Resolving script "%s" referenced by "%s"', script_id, context.script_id)

    try:
        bytecode = yield from compile_script(script_id, context.enter(script_id))
    except CompilerError as e:
        raise ResolutionError(
            f'Compilation error in resolved script "{script_id}": {e.message}',
            node.range, context.script_id, [e, *e.nested]
        ) from e

    context.record('script', script_id, node, bytecode)
    return bytecode

def resolve_variable(node: Node, variable_id: str, operation: str|None,
                     context: ResolutionContext) -> Resolution:
    """Resolve a variable through the operation bound to its capability."""
    environment, data = context.environment, context.data
    definition = environment.variables[variable_id]
    capability = select_capability(node.name, definition, operation)

    request = OperationRequest(
        identifier=node.name,
        variable_id=variable_id,
        operation=operation,
        definition=definition,
        entity_id=environment.entity_ownership.get(variable_id),
        data=data,
        environment=environment,
    )

    match capability:
        case Capability.SIGNATURE if node.name not in data.keys.signatures:
            if request.head == 'data_signature':
                rert(request.parameter in environment.scripts,
                     f'Identifier "{node.name}" signs script '
                     f'"{request.parameter}", but no such script exists.')
                request.message = yield from resolve_script(
                    node, request.parameter, context
                )
            else:
                request.covered_bytecode = yield from covered_bytecode(node, context)

    handler = environment.operations.get(capability)
    rert(handler is not None,
         f'Identifier "{node.name}" requires the {capability.value} operation, '
         'but it is not available in this compilation environment.')

    try:
        value = yield from invoke(handler, request)
    except CompilerError:
        raise
    except Exception as e:
        raise ResolutionError(
            f'Operation for identifier "{node.name}" failed: {e}'
        ) from e

    rert(type(value) is bytes,
         f'Operation for identifier "{node.name}" produced '
         f'{type(value).__name__}, not bytes.')
    return value

def covered_bytecode(node: Node, context: ResolutionContext) -> Resolution:
    """Return the bytecode covered by signatures in this compilation:
        the value from the transaction context if given, otherwise the
        compiled locking script unlocked by the root script.
    """
    transaction = context.data.transaction_context
    rert(transaction is not None,
         f'Identifier "{node.name}" requires a transaction context, but none '
         'was provided in the compilation data.')

    if transaction.covered_bytecode is not None:
        return transaction.covered_bytecode

    locking_script_id = context.environment.unlocking_scripts.get(context.root_script_id)
    rert(locking_script_id is not None,
         f'Identifier "{node.name}" requires covered bytecode, but script '
         f'"{context.root_script_id}" does not unlock a locking script and '
         'the transaction context provides none.')
    return (yield from resolve_script(node, locking_script_id, context))

def evaluate(node: Evaluation, resolved: list[ResolvedNode],
             context: ResolutionContext) -> Resolution:
    """Generate the evaluation's resolved contents, run them on the
        environment's virtual machine, and return the top stack item as
        a literal. Raises EvaluationExecutionError if the run is
        unsuccessful or leaves nothing on the stack.
    """
    bytecode = generate(resolved)
    vm = context.environment.vm

    try:
        rert(vm is not None,
             'Evaluations require a virtual machine, but none is available '
             'in this compilation environment.')
        logger.debug('Evaluating 0x%s in script "%s"', bytecode.hex(), context.script_id)
        result = yield from invoke(vm.evaluate, bytecode)
        rert(isinstance(result, EvaluationResult) and isinstance(result.stack, list)
             and all(type(item) is bytes for item in result.stack),
             'Virtual machine returned an invalid result; expected an '
             'EvaluationResult with a stack of bytes.')
    except CompilerError as e:
        raise e.locate(node.range, context.script_id)
    except Exception as e:
        raise EvaluationExecutionError(
            f'Evaluation could not be run: {e}', node.range
        ) from e

    if not result.success:
        raise EvaluationExecutionError(
            f'Failed to reduce evaluation: {result.error}', node.range
        )
    if not result.stack:
        raise EvaluationExecutionError(
            'Evaluation completed without leaving an item on the stack.',
            node.range
        )

    value = result.stack[-1]
    context.record('evaluation', f'0x{bytecode.hex()}', node, value)
    return ResolvedLiteral(value, node.range, 'evaluation')
