"""Status projection for the terminal status bar and the optional UI server."""

from .client import UIClient
from .status_board import StatusBoard, StatusData

__all__ = ["UIClient", "StatusBoard", "StatusData"]
