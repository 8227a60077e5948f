"""
Server package exposing the FastAPI app and the settlement worker.
"""

from .app import app, create_app  # noqa: F401
from .settlement import SettlementWorker  # noqa: F401
