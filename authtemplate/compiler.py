from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from .classes import (
    CompilationArtifact,
    CompilationData,
    CompilationFailure,
    CompilationSuccess,
    ErrorReport,
)
from .errors import CompilerError, ResolutionError, tert
from .functions import StackMachine, opcode_map
from .interfaces import CanEvaluate, CanSign
from .operations import Capability, Ed25519, Operation, default_operations, sha256_digest
from .resolution import Resolution, ResolutionContext, compile_script
import inspect
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CompilationEnvironment:
    """Everything a compilation may consult besides the runtime data.
        The compiler never mutates an environment, so one instance may
        be shared by any number of compilations.
    """
    opcodes: dict[str, int] = field(default_factory=dict)
    operations: dict[Capability, Operation] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    variables: dict[str, dict] = field(default_factory=dict)
    entity_ownership: dict[str, str] = field(default_factory=dict)
    unlocking_scripts: dict[str, str] = field(default_factory=dict)
    locking_script_types: dict[str, str] = field(default_factory=dict)
    unlocking_script_time_lock_types: dict[str, str] = field(default_factory=dict)
    sha256: Callable[[bytes], bytes|Awaitable[bytes]]|None = field(default=None)
    ed25519: CanSign|None = field(default=None)
    vm: CanEvaluate|None = field(default=None)


def _report(error: CompilerError) -> ErrorReport:
    return ErrorReport(error.message, error.range, error.script_id, error.error_type)

def compile_entry(script_id: str, data: CompilationData,
                  environment: CompilationEnvironment) -> Resolution:
    """Compile a script into a CompilationArtifact. Compile errors are
        recorded in the artifact rather than raised.
    """
    artifact = CompilationArtifact(script_id)
    context = ResolutionContext(environment, data, (script_id,), artifact.trace)
    logger.debug('Compiling script "%s"', script_id)

    try:
        artifact.bytecode = yield from compile_script(script_id, context, artifact)
    except CompilerError as e:
        artifact.error_type = e.error_type
        artifact.errors = [_report(error) for error in (e, *e.nested)]
        logger.debug('Compilation of script "%s" failed (%s): %s',
                     script_id, e.error_type.value, e.message)
        return artifact

    logger.debug('Compiled script "%s" to %d bytes', script_id, len(artifact.bytecode))
    return artifact

def _step(process: Resolution, value: Any, error: Exception|None) -> tuple[bool, Any]:
    """Resume the process with a value or an error. Returns (True,
        result) when it finishes or (False, invocation) when it suspends.
    """
    try:
        if error is not None:
            return (False, process.throw(error))
        return (False, process.send(value))
    except StopIteration as done:
        return (True, done.value)

def run_synchronously(process: Resolution) -> Any:
    """Drive a resolution process, calling each capability directly. A
        capability which returns an awaitable fails the invocation.
    """
    value, error = None, None
    while True:
        finished, result = _step(process, value, error)
        if finished:
            return result

        value, error = None, None
        try:
            value = result.function(*result.args)
        except Exception as e:
            error = e
            continue

        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            value, error = None, ResolutionError(
                f'Capability {getattr(result.function, "__name__", result.function)} '
                'is asynchronous; use generate_bytecode_async.'
            )

async def run_asynchronously(process: Resolution) -> Any:
    """Drive a resolution process, awaiting capabilities which return
        awaitables.
    """
    value, error = None, None
    while True:
        finished, result = _step(process, value, error)
        if finished:
            return result

        value, error = None, None
        try:
            value = result.function(*result.args)
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            error = e


@dataclass(frozen=True, eq=False)
class Compiler:
    environment: CompilationEnvironment

    def _process(self, script_id: str, data: CompilationData|None) -> Resolution:
        tert(type(script_id) is str, 'script_id must be str')
        tert(data is None or isinstance(data, CompilationData),
             'data must be CompilationData or None')
        return compile_entry(script_id, data or CompilationData(), self.environment)

    def generate_bytecode(
            self, script_id: str, data: CompilationData|None = None,
            debug: bool = False
        ) -> CompilationSuccess|CompilationFailure|CompilationArtifact:
        """Compile the script with the given id. Returns a
            CompilationSuccess or CompilationFailure, or the full
            CompilationArtifact when debug is set. All capabilities must
            be synchronous.
        """
        artifact = run_synchronously(self._process(script_id, data))
        return artifact if debug else artifact.result()

    async def generate_bytecode_async(
            self, script_id: str, data: CompilationData|None = None,
            debug: bool = False
        ) -> CompilationSuccess|CompilationFailure|CompilationArtifact:
        """Compile the script with the given id, awaiting any
            asynchronous capabilities. Returns the same values as
            generate_bytecode.
        """
        artifact = await run_asynchronously(self._process(script_id, data))
        return artifact if debug else artifact.result()


def create_compiler(environment: CompilationEnvironment) -> Compiler:
    """Create a Compiler from a complete compilation environment."""
    tert(isinstance(environment, CompilationEnvironment),
         'environment must be a CompilationEnvironment')
    tert(environment.ed25519 is None or isinstance(environment.ed25519, CanSign),
         'ed25519 must implement CanSign')
    tert(environment.vm is None or isinstance(environment.vm, CanEvaluate),
         'vm must implement CanEvaluate')
    return Compiler(environment)

def create_compiler_common(**overrides) -> Compiler:
    """Create a Compiler using the common opcodes, the default
        operations, sha256 from hashlib, ed25519 from PyNaCl and the
        default stack machine. Any environment field may be overridden,
        e.g. scripts and variables, or vm=None to disable evaluations.
    """
    settings = {
        'opcodes': opcode_map(),
        'operations': dict(default_operations),
        'sha256': sha256_digest,
        'ed25519': Ed25519(),
        'vm': StackMachine(),
        **overrides,
    }
    return create_compiler(CompilationEnvironment(**settings))
