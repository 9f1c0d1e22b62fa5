from __future__ import annotations
from typing import Awaitable, Protocol, runtime_checkable
from .classes import EvaluationResult


@runtime_checkable
class CanSign(Protocol):
    def derive_public_key(self, private_key: bytes) -> bytes|Awaitable[bytes]:
        """Derive the public key for a private key."""
        ...

    def sign(self, private_key: bytes, message: bytes) -> bytes|Awaitable[bytes]:
        """Sign the message with the private key, returning the
            signature bytes.
        """
        ...


@runtime_checkable
class CanEvaluate(Protocol):
    def evaluate(self, bytecode: bytes) -> EvaluationResult|Awaitable[EvaluationResult]:
        """Run the bytecode and report the success and final stack."""
        ...
