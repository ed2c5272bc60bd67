"""Aggregate model imports for Alembic auto-detection."""

from app.models.user import User  # noqa: F401

# Reposition aggregate
from app.models.reposition import (  # noqa: F401
    Reposition,
    RepositionContrastFabric,
    RepositionPiece,
    RepositionProduct,
)
from app.models.history import RepositionHistory  # noqa: F401
from app.models.transfer import RepositionTransfer  # noqa: F401
from app.models.timer import RepositionTimer  # noqa: F401
from app.models.material import RepositionMaterial  # noqa: F401
from app.models.document import Document  # noqa: F401

# Support tables
from app.models.folio_sequence import FolioSequence  # noqa: F401
from app.models.notification import Notification  # noqa: F401
