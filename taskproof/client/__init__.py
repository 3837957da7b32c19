from .capture import ProofCapture, ProofImage, ProofRejected
from .flow import FlowError, FlowState, ProofUploadFlow
from .transport import TaskRef, VerificationClient

__all__ = [
    "FlowError",
    "FlowState",
    "ProofCapture",
    "ProofImage",
    "ProofRejected",
    "ProofUploadFlow",
    "TaskRef",
    "VerificationClient",
]
