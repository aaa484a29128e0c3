"""
Munich Weekly Backend — Issue Service Tests
============================================

What we test:
    ✅ Window ordering rules with their messages
    ✅ Create, list (newest submission window first), get, 404
    ✅ Partial update validated against the merged windows
    ✅ Window membership is inclusive at both ends
"""

from datetime import datetime, timedelta, timezone

import pytest

from munich_weekly.exceptions import NotFoundError, ValidationError
from munich_weekly.models.issue import Issue
from munich_weekly.schemas.issue import IssueCreateRequest, IssueUpdateRequest
from munich_weekly.services.issue_service import IssueService, validate_issue_windows

T0 = datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)


def _create_request(**overrides) -> IssueCreateRequest:
    values = dict(
        title="Biergarten Summer",
        description="Chestnut trees and long tables",
        submission_start=T0,
        submission_end=T0 + timedelta(days=7),
        voting_start=T0 + timedelta(days=7),
        voting_end=T0 + timedelta(days=10),
    )
    values.update(overrides)
    return IssueCreateRequest(**values)


class TestValidateIssueWindows:
    def test_valid_windows(self):
        validate_issue_windows(T0, T0 + timedelta(days=1), T0, T0 + timedelta(days=2))

    def test_submission_window_reversed(self):
        with pytest.raises(ValidationError, match="Submission start must be before submission end"):
            validate_issue_windows(T0, T0, T0, T0 + timedelta(days=1))

    def test_voting_window_reversed(self):
        with pytest.raises(ValidationError, match="Voting start must be before voting end"):
            validate_issue_windows(T0, T0 + timedelta(days=1), T0 + timedelta(days=2), T0 + timedelta(days=1))

    def test_voting_before_submission(self):
        with pytest.raises(ValidationError, match="Voting must start after submission start"):
            validate_issue_windows(
                T0, T0 + timedelta(days=1), T0 - timedelta(hours=1), T0 + timedelta(days=2)
            )

    def test_naive_datetimes_are_treated_as_utc(self):
        naive = T0.replace(tzinfo=None)
        validate_issue_windows(naive, T0 + timedelta(days=1), naive, T0 + timedelta(days=2))


class TestIssueWindowsMembership:
    def _issue(self):
        return Issue(
            title="t",
            submission_start=T0,
            submission_end=T0 + timedelta(days=1),
            voting_start=T0 + timedelta(days=1),
            voting_end=T0 + timedelta(days=2),
        )

    def test_boundaries_are_inclusive(self):
        issue = self._issue()
        assert issue.is_submission_open(T0)
        assert issue.is_submission_open(T0 + timedelta(days=1))
        assert issue.is_voting_open(T0 + timedelta(days=2))

    def test_outside_windows(self):
        issue = self._issue()
        assert not issue.is_submission_open(T0 - timedelta(seconds=1))
        assert not issue.is_voting_open(T0 + timedelta(days=2, seconds=1))


class TestIssueService:
    def setup_method(self):
        self.service = IssueService()

    @pytest.mark.asyncio
    async def test_create_and_get(self, db_session):
        created = await self.service.create_issue(db_session, _create_request())
        fetched = await self.service.get_issue(db_session, created.id)

        assert fetched.title == "Biergarten Summer"
        assert fetched.id == created.id

    @pytest.mark.asyncio
    async def test_create_rejects_bad_windows(self, db_session):
        with pytest.raises(ValidationError):
            await self.service.create_issue(
                db_session, _create_request(voting_end=T0 + timedelta(days=6), voting_start=T0 + timedelta(days=7))
            )

    @pytest.mark.asyncio
    async def test_get_missing_issue(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.get_issue(mock_db_session, 999)

    @pytest.mark.asyncio
    async def test_list_newest_first(self, db_session):
        older = await self.service.create_issue(db_session, _create_request(title="Older"))
        newer = await self.service.create_issue(
            db_session,
            _create_request(
                title="Newer",
                submission_start=T0 + timedelta(days=30),
                submission_end=T0 + timedelta(days=37),
                voting_start=T0 + timedelta(days=37),
                voting_end=T0 + timedelta(days=40),
            ),
        )

        issues = await self.service.list_issues(db_session)
        assert [i.id for i in issues] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, db_session):
        created = await self.service.create_issue(db_session, _create_request())

        updated = await self.service.update_issue(
            db_session, created.id, IssueUpdateRequest(title="Biergarten Autumn")
        )

        assert updated.title == "Biergarten Autumn"
        assert updated.description == "Chestnut trees and long tables"

    @pytest.mark.asyncio
    async def test_update_validates_merged_windows(self, db_session):
        created = await self.service.create_issue(db_session, _create_request())

        # alone this is a valid value; merged with the stored voting_end it is not
        with pytest.raises(ValidationError, match="Voting start must be before voting end"):
            await self.service.update_issue(
                db_session, created.id, IssueUpdateRequest(voting_start=T0 + timedelta(days=11))
            )

    @pytest.mark.asyncio
    async def test_null_window_keeps_stored_value(self, db_session):
        created = await self.service.create_issue(db_session, _create_request())

        updated = await self.service.update_issue(
            db_session, created.id, IssueUpdateRequest(voting_end=None, title="Renamed")
        )

        assert updated.title == "Renamed"
        assert updated.voting_end == created.voting_end
