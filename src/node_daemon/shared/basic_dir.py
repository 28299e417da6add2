import os
import platform
import tempfile
from pathlib import Path

APP_NAME = "noded"
DISPLAY_NAME = "Node Daemon"
DEFAULT_CONFIG_FILE = f"{APP_NAME}.conf"
DEFAULT_LOG_FILE = f"{APP_NAME}.log"
DEFAULT_LOG_FOLDER = Path(tempfile.gettempdir())
DAEMON_STDIO_FILE = f"{APP_NAME}.daemon.stdout.stderr"


def default_data_dir() -> Path:
    system = platform.system()
    if system == "Windows":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / "NodeDaemon"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "NodeDaemon"
    return Path.home() / f".{APP_NAME}"


def default_log_file() -> Path:
    return DEFAULT_LOG_FOLDER / DEFAULT_LOG_FILE


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
