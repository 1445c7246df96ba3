"""Unit tests for the claim fulfillment repository."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from app.database.models import ClaimFulfillment
from app.repositories.claim_repository import ClaimFulfillmentRepository
from tests.factories import make_fulfillment


def compiled(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


@pytest.fixture
def session() -> AsyncMock:
    session = AsyncMock()
    session.execute.return_value = MagicMock()
    return session


class TestApproveQuote:
    @pytest.mark.asyncio
    async def test_update_is_conditional(self, session):
        fulfillment_id = uuid4()
        session.execute.return_value.scalar_one_or_none.return_value = fulfillment_id
        session.scalar.return_value = make_fulfillment(quote_status="approved", status="quote_approved")

        current, changed = await ClaimFulfillmentRepository(session).approve_quote(fulfillment_id)

        assert changed is True
        assert current.quote_status == "approved"
        sql = compiled(session.execute.call_args.args[0])
        assert sql.startswith("UPDATE claim_fulfillment")
        assert sql.count("IS DISTINCT FROM") == 2
        assert "RETURNING claim_fulfillment.id" in sql
        assert "updated_at=" in sql
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_already_approved_row_is_unchanged(self, session):
        session.execute.return_value.scalar_one_or_none.return_value = None
        session.scalar.return_value = make_fulfillment(quote_status="approved", status="quote_approved")

        current, changed = await ClaimFulfillmentRepository(session).approve_quote(uuid4())

        assert changed is False
        assert current.status == "quote_approved"
        reload = session.scalar.call_args.args[0]
        assert reload.get_execution_options()["populate_existing"] is True

    @pytest.mark.asyncio
    async def test_database_error_rolls_back(self, session):
        session.execute.side_effect = OperationalError("UPDATE", {}, Exception("down"))

        with pytest.raises(OperationalError):
            await ClaimFulfillmentRepository(session).approve_quote(uuid4())

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()


def test_updated_at_default_is_timezone_aware():
    onupdate = ClaimFulfillment.__table__.c.updated_at.onupdate

    assert onupdate.arg(None).tzinfo is not None
