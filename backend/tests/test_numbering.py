"""Tests for folio generation."""

import re
from datetime import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.folio_sequence import FolioSequence
from app.utils.numbering import folio_prefix, format_folio, next_folio

FOLIO_RE = re.compile(r"^JN-REQ-\d{2}-\d{2}-\d{3}$")


@pytest.mark.unit
class TestFolioFormat:

    def test_prefix_uses_month_and_two_digit_year(self):
        assert folio_prefix(datetime(2026, 3, 14)) == "JN-REQ-03-26"
        assert folio_prefix(datetime(2025, 11, 1)) == "JN-REQ-11-25"

    def test_sequence_is_zero_padded(self):
        assert format_folio("JN-REQ-03-26", 7) == "JN-REQ-03-26-007"
        assert format_folio("JN-REQ-03-26", 123) == "JN-REQ-03-26-123"

    def test_formatted_folio_matches_pattern(self):
        assert FOLIO_RE.match(format_folio(folio_prefix(datetime(2026, 1, 5)), 1))


@pytest.mark.service
@pytest.mark.asyncio
class TestNextFolio:

    async def test_first_folio_of_month_is_001(self, db_session: AsyncSession):
        folio = await next_folio(db_session, now=datetime(2026, 3, 2))
        assert folio == "JN-REQ-03-26-001"

    async def test_sequence_is_contiguous_within_month(self, db_session: AsyncSession):
        now = datetime(2026, 3, 2)
        folios = [await next_folio(db_session, now=now) for _ in range(3)]
        assert folios == ["JN-REQ-03-26-001", "JN-REQ-03-26-002", "JN-REQ-03-26-003"]

    async def test_sequence_restarts_each_month(self, db_session: AsyncSession):
        await next_folio(db_session, now=datetime(2026, 3, 30))
        await next_folio(db_session, now=datetime(2026, 3, 31))
        april = await next_folio(db_session, now=datetime(2026, 4, 1))
        assert april == "JN-REQ-04-26-001"

    async def test_counter_row_tracks_last_value(self, db_session: AsyncSession):
        now = datetime(2026, 5, 10)
        await next_folio(db_session, now=now)
        await next_folio(db_session, now=now)

        result = await db_session.execute(
            select(FolioSequence.last_value).where(FolioSequence.prefix == "JN-REQ-05-26")
        )
        assert result.scalar_one() == 2
