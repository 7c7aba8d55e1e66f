from .app import build_parser
from .app import main_entry

__all__ = ["main_entry", "build_parser"]
