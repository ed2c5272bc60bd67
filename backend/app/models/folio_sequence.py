"""FolioSequence: per-month counter backing reposition folios.

One row per ``JN-REQ-MM-YY`` prefix.  Incremented with a single
INSERT … ON CONFLICT DO UPDATE … RETURNING so concurrent creations never
receive the same number.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class FolioSequence(Base):
    __tablename__ = "folio_sequences"

    prefix: Mapped[str] = mapped_column(String(20), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
