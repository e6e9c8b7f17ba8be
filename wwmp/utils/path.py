# utils/path.py
import sys, os

APP_NAME = "wwmp"

def config_dir() -> str:
    """
    每個使用者的設定資料夾：
    Windows -> %APPDATA%/wwmp，macOS -> ~/Library/Application Support/wwmp，
    其他 -> $XDG_CONFIG_HOME/wwmp 或 ~/.config/wwmp
    """
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or os.path.join(os.path.expanduser("~"), "AppData", "Roaming")
    elif sys.platform == "darwin":
        base = os.path.join(os.path.expanduser("~"), "Library", "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, APP_NAME)

def config_path() -> str:
    return os.path.join(config_dir(), "config.json")

def log_dir() -> str:
    override = os.environ.get("WWMP_LOG_DIR")
    d = override or os.path.join(config_dir(), "logs")
    os.makedirs(d, exist_ok=True)
    return d
