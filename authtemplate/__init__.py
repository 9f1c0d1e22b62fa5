from .classes import (
    CompilationArtifact,
    CompilationData,
    CompilationFailure,
    CompilationSuccess,
    ErrorReport,
    EvaluationResult,
    Keys,
    SourceRange,
    TransactionContext,
)
from .compiler import (
    CompilationEnvironment,
    Compiler,
    create_compiler,
    create_compiler_common,
)
from .errors import (
    CompilerError,
    EncodingError,
    ErrorType,
    EvaluationExecutionError,
    LexError,
    ParseError,
    ResolutionError,
    ScriptExecutionError,
)
from .encoding import encode_data_push, generate
from .functions import (
    StackMachine,
    int_to_script_number,
    script_number_to_int,
)
from .interfaces import CanEvaluate, CanSign
from .operations import Capability, Ed25519, OperationRequest, default_operations
from .parsing import parse, tokenize
from .tools import format_errors, template_to_environment
