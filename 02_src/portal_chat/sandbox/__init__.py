from .app import create_sandbox_app
from .storage import ADMIN_PARTICIPANT_ID, ISandboxStorage, SandboxStorage

__all__ = [
    "create_sandbox_app",
    "ADMIN_PARTICIPANT_ID",
    "ISandboxStorage",
    "SandboxStorage",
]
