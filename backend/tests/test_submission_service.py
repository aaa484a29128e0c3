"""
Munich Weekly Backend — Submission Service Tests
=================================================

What we test:
    ✅ Create: window check, quota, description length, missing issue
    ✅ Upload: stored under the issue, dimensions recorded, owner check,
       layout cache invalidated
    ✅ Review transitions stamp reviewed_at
    ✅ Listings: public filter, vote counts, hidden counts for own pending
    ✅ Delete: votes and file removed, owner/admin rule
    ✅ Selected-submissions ZIP export
"""

import io
import zipfile
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from munich_weekly.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from munich_weekly.models.submission import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUS_SELECTED,
    Submission,
)
from munich_weekly.models.user import User
from munich_weekly.models.vote import Vote
from munich_weekly.schemas.submission import SubmissionCreateRequest
from munich_weekly.services.archive_service import SUMMARY_ENTRY, ArchiveService, sanitize_filename
from munich_weekly.services.storage_service import storage_service
from munich_weekly.services.submission_service import SubmissionService


class TestCreateSubmission:
    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_create_in_open_window(self, db_session, factory):
        seeded = await factory.user()
        issue = await factory.issue()
        user = await db_session.get(User, seeded.id)

        result = await self.service.create_submission(
            db_session, user, SubmissionCreateRequest(issue_id=issue.id, description="Isar at dawn")
        )

        stored = await db_session.get(Submission, result.submission_id)
        assert stored.status == STATUS_PENDING
        assert stored.image_url is None
        assert result.upload_url == f"/api/submissions/{result.submission_id}/upload"

    @pytest.mark.asyncio
    async def test_closed_window_rejected(self, db_session, factory):
        seeded = await factory.user()
        issue = await factory.issue(submission_open=False)
        user = await db_session.get(User, seeded.id)

        with pytest.raises(ValidationError, match="Not in valid date range"):
            await self.service.create_submission(
                db_session, user, SubmissionCreateRequest(issue_id=issue.id)
            )

    @pytest.mark.asyncio
    async def test_quota_per_issue(self, db_session, factory):
        seeded = await factory.user()
        issue = await factory.issue()
        for _ in range(4):
            await factory.submission(seeded, issue)
        user = await db_session.get(User, seeded.id)

        with pytest.raises(ValidationError, match="maximum of 4 images per issue"):
            await self.service.create_submission(
                db_session, user, SubmissionCreateRequest(issue_id=issue.id)
            )

    @pytest.mark.asyncio
    async def test_description_too_long(self, db_session, factory):
        seeded = await factory.user()
        issue = await factory.issue()
        user = await db_session.get(User, seeded.id)

        with pytest.raises(ValidationError, match="Description must be 200 characters or less"):
            await self.service.create_submission(
                db_session, user, SubmissionCreateRequest(issue_id=issue.id, description="x" * 201)
            )

    @pytest.mark.asyncio
    async def test_quota_is_checked_before_description(self, db_session, factory):
        seeded = await factory.user()
        issue = await factory.issue()
        for _ in range(4):
            await factory.submission(seeded, issue)
        user = await db_session.get(User, seeded.id)

        with pytest.raises(ValidationError, match="maximum of 4 images per issue"):
            await self.service.create_submission(
                db_session, user, SubmissionCreateRequest(issue_id=issue.id, description="x" * 201)
            )

    @pytest.mark.asyncio
    async def test_unknown_issue(self, db_session, factory):
        seeded = await factory.user()
        user = await db_session.get(User, seeded.id)

        with pytest.raises(NotFoundError):
            await self.service.create_submission(db_session, user, SubmissionCreateRequest(issue_id=404))


class TestUploadImage:
    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_upload_stores_file_and_dimensions(self, db_session, factory, make_image_bytes):
        owner = await factory.user()
        issue = await factory.issue()
        pending = await factory.submission(owner, issue)
        content = make_image_bytes(1200, 800)

        result = await self.service.upload_image(
            db_session, owner, pending.id, "IMG_0042.PNG", content, len(content)
        )

        assert result.success is True
        assert result.url == f"/uploads/issues/{issue.id}/submissions/{pending.id}.png"
        stored = await db_session.get(Submission, pending.id)
        assert (stored.image_width, stored.image_height) == (1200, 800)
        assert float(stored.aspect_ratio) == pytest.approx(1.5)
        assert await storage_service.read(storage_service.key_from_url(result.url)) == content

    @pytest.mark.asyncio
    async def test_upload_invalidates_layout_cache(self, db_session, factory, sample_image_bytes):
        owner = await factory.user()
        issue = await factory.issue()
        pending = await factory.submission(owner, issue)

        with patch("munich_weekly.services.submission_service.masonry_order_service") as mock_layout:
            await self.service.upload_image(db_session, owner, pending.id, "a.png", sample_image_bytes)

        mock_layout.invalidate.assert_called_once_with(issue.id)

    @pytest.mark.asyncio
    async def test_upload_by_other_user_forbidden(self, db_session, factory, sample_image_bytes):
        owner = await factory.user()
        stranger = await factory.user()
        issue = await factory.issue()
        pending = await factory.submission(owner, issue)

        with pytest.raises(PermissionDeniedError):
            await self.service.upload_image(db_session, stranger, pending.id, "a.png", sample_image_bytes)

    @pytest.mark.asyncio
    async def test_upload_rejects_wrong_extension(self, db_session, factory, sample_image_bytes):
        owner = await factory.user()
        issue = await factory.issue()
        pending = await factory.submission(owner, issue)

        with pytest.raises(ValidationError, match="not supported"):
            await self.service.upload_image(db_session, owner, pending.id, "a.gif", sample_image_bytes)


class TestReviewAndListings:
    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_review_transitions(self, db_session, factory):
        owner = await factory.user()
        issue = await factory.issue()
        first = await factory.submission(owner, issue)
        second = await factory.submission(owner, issue)

        approved = await self.service.approve(db_session, first.id)
        rejected = await self.service.reject(db_session, second.id)
        selected = await self.service.mark_selected(db_session, first.id)

        assert approved.status == STATUS_APPROVED
        assert approved.reviewed_at is not None
        assert rejected.status == STATUS_REJECTED
        assert selected.status == STATUS_SELECTED

    @pytest.mark.asyncio
    async def test_list_public_with_vote_counts(self, db_session, factory):
        owner = await factory.user()
        issue = await factory.issue()
        approved = await factory.submission(owner, issue, STATUS_APPROVED)
        selected = await factory.submission(owner, issue, STATUS_SELECTED)
        await factory.submission(owner, issue, STATUS_PENDING)
        await factory.vote(approved, visitor_id="visitor-a")
        await factory.vote(approved, visitor_id="visitor-b")

        listed = await self.service.list_public(db_session, issue.id)

        counts = {s.id: s.vote_count for s in listed}
        assert counts == {approved.id: 2, selected.id: 0}

    @pytest.mark.asyncio
    async def test_list_mine_hides_counts_of_unpublished(self, db_session, factory):
        owner = await factory.user()
        issue = await factory.issue()
        approved = await factory.submission(owner, issue, STATUS_APPROVED)
        pending = await factory.submission(owner, issue, STATUS_PENDING)
        await factory.vote(approved, visitor_id="visitor-a")

        mine = await self.service.list_mine(db_session, owner, issue.id)

        counts = {s.id: s.vote_count for s in mine}
        assert counts == {approved.id: 1, pending.id: None}


class TestDeleteSubmission:
    def setup_method(self):
        self.service = SubmissionService()

    async def _seed_with_file(self, factory, image_bytes):
        owner = await factory.user()
        issue = await factory.issue()
        submission = await factory.submission(owner, issue, STATUS_APPROVED)
        url = await storage_service.store(
            storage_service.submission_key(issue.id, submission.id, ".png"), image_bytes
        )
        submission.image_url = url
        await factory.add(submission)
        await factory.vote(submission, visitor_id="visitor-a")
        return owner, submission, url

    @pytest.mark.asyncio
    async def test_owner_deletes_row_votes_and_file(self, db_session, factory, sample_image_bytes):
        owner, submission, url = await self._seed_with_file(factory, sample_image_bytes)

        await self.service.delete_submission(db_session, owner, submission.id)

        assert await db_session.get(Submission, submission.id) is None
        votes = await db_session.execute(
            select(func.count(Vote.id)).where(Vote.submission_id == submission.id)
        )
        assert votes.scalar_one() == 0
        assert not await storage_service.exists(storage_service.key_from_url(url))

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, db_session, factory, sample_image_bytes):
        _, submission, _ = await self._seed_with_file(factory, sample_image_bytes)
        stranger = await factory.user()

        with pytest.raises(PermissionDeniedError, match="Not authorized to delete this submission"):
            await self.service.delete_submission(db_session, stranger, submission.id)

    @pytest.mark.asyncio
    async def test_admin_can_delete(self, db_session, factory, sample_image_bytes):
        _, submission, _ = await self._seed_with_file(factory, sample_image_bytes)
        admin = await factory.user(admin=True)

        await self.service.delete_submission(db_session, admin, submission.id)

        assert await db_session.get(Submission, submission.id) is None


class TestSelectedArchive:
    def test_sanitize_filename(self):
        assert sanitize_filename("Anna Müller/β") == "Anna_M_ller__"
        assert sanitize_filename(None) == "unknown"

    @pytest.mark.asyncio
    async def test_no_selected_submissions(self, db_session, factory):
        issue = await factory.issue()
        assert await ArchiveService().build_selected_archive(db_session, issue.id) is None

    @pytest.mark.asyncio
    async def test_archive_contains_selected_files_and_summary(
        self, db_session, factory, sample_image_bytes
    ):
        owner = await factory.user(nickname="Lena K")
        issue = await factory.issue(title="Föhn Days")
        chosen = await factory.submission(owner, issue, STATUS_SELECTED, description="Alps from the tower")
        chosen.image_url = await storage_service.store(
            storage_service.submission_key(issue.id, chosen.id, ".png"), sample_image_bytes
        )
        await factory.add(chosen)
        # selected, but its image lives elsewhere
        await factory.submission(owner, issue, STATUS_SELECTED)
        await factory.submission(owner, issue, STATUS_APPROVED)

        archive = await ArchiveService().build_selected_archive(db_session, issue.id)

        assert archive.filename == "F_hn_Days_selected_submissions.zip"
        assert (archive.added, archive.failed) == (1, 1)
        with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
            names = zf.namelist()
            assert f"001_Lena_K_{chosen.id}.png" in names
            assert SUMMARY_ENTRY in names
            summary = zf.read(SUMMARY_ENTRY).decode("utf-8")
        assert "Total Selected: 2" in summary
        assert "Alps from the tower" in summary
