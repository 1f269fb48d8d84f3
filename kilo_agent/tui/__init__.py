from .app import KiloApp
from .console_adapter import TUIConsole

__all__ = ["KiloApp", "TUIConsole"]
