from .app import Waypoint
from .config import Settings
from .middleware import Continue
from .middleware import Halt
from .middleware import Middleware
from .router import RouteMatch
from .router import Router
from .types import ConfigurationError
from .types import HTTPException
from .types import InvalidMethod
from .types import Redirect
from .types import Request
from .types import Response

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "Continue",
    "Halt",
    "HTTPException",
    "InvalidMethod",
    "Middleware",
    "Redirect",
    "Request",
    "Response",
    "RouteMatch",
    "Router",
    "Settings",
    "Waypoint",
]
