"""Service layer: provider client, auth lifecycle and result import."""

from .bulk import BulkImportResult, import_recent
from .importer import ImportResult, import_session, is_session_cached
from .iracing import IRacingClient, get_iracing_client, mask_client_secret
from .oauth_flow import complete_callback, safe_return_to, start_flow
from .results import extract_result
from .tokens import get_valid_access_token
from .viewer import Viewer, current_viewer, resolve_viewer

__all__ = [
    "BulkImportResult",
    "IRacingClient",
    "ImportResult",
    "Viewer",
    "complete_callback",
    "current_viewer",
    "extract_result",
    "get_iracing_client",
    "get_valid_access_token",
    "import_recent",
    "import_session",
    "is_session_cached",
    "mask_client_secret",
    "resolve_viewer",
    "safe_return_to",
    "start_flow",
]
