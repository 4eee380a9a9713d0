"""External agent profiles, process runner and invoker."""

from .invoker import AgentInvocation, AgentInvoker, ExitResult, InvocationStatus, RunningAgent
from .profiles import BUILTIN_PROFILES, AgentProfile, AgentProfileRegistry
from .runner import Command, ProcessHandle, ProcessResult, ProcessRunner, ProgressLine

__all__ = [
    "BUILTIN_PROFILES",
    "AgentInvocation",
    "AgentInvoker",
    "AgentProfile",
    "AgentProfileRegistry",
    "Command",
    "ExitResult",
    "InvocationStatus",
    "ProcessHandle",
    "ProcessResult",
    "ProcessRunner",
    "ProgressLine",
    "RunningAgent",
]
