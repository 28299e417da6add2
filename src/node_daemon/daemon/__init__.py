from .app import CommandExecutor, create_app
from .daemon import Daemon

__all__ = ["CommandExecutor", "Daemon", "create_app"]
