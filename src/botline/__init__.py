"""botline - talk to a Direct Line bot from the terminal."""

from .config import Settings, load_settings
from .relay import RelayLoop
from .session import Session, SessionBootstrapper

__version__ = "0.1.0"

__all__ = ["RelayLoop", "Session", "SessionBootstrapper", "Settings", "load_settings"]
