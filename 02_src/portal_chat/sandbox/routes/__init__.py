from .communication import create_communication_router
from .control import create_control_router

__all__ = ["create_communication_router", "create_control_router"]
