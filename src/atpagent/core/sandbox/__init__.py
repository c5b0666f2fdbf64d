from .errors import ExecutionFault, ExecutionTimeout
from .executor import Sandbox, SandboxConfig

__all__ = ["ExecutionFault", "ExecutionTimeout", "Sandbox", "SandboxConfig"]
