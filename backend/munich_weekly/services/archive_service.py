"""
Munich Weekly Backend — Selected Submissions Archive
=====================================================

Builds the ZIP an admin downloads after an issue closes: the original
image of every selected submission plus a _SUMMARY.txt.

Entry names: {index:03d}_{nickname}_{submissionId}{ext}
    index counts only files that were actually added, so a missing image
    does not leave a gap in the numbering.
"""

import io
import logging
import re
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import utcnow
from munich_weekly.exceptions import MunichWeeklyError
from munich_weekly.models.submission import Submission
from munich_weekly.services.issue_service import issue_service
from munich_weekly.services.storage_service import StorageService, storage_service
from munich_weekly.services.submission_service import submission_service

logger = logging.getLogger(__name__)

SUMMARY_ENTRY = "_SUMMARY.txt"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(value: Optional[str]) -> str:
    if not value:
        return "unknown"
    return _UNSAFE_CHARS.sub("_", value)


def extension_from_url(url: str) -> str:
    suffix = PurePosixPath(url.split("?", 1)[0]).suffix
    return suffix or ".jpg"


@dataclass
class SelectedArchive:
    filename: str
    content: bytes
    added: int
    failed: int


class ArchiveService:
    def __init__(self, storage: Optional[StorageService] = None):
        self.storage = storage or storage_service

    def _summary(
        self, issue_title: str, submissions: List[Submission], added: int, failed: int
    ) -> str:
        lines = [
            "Selected Submissions Summary",
            "===========================",
            "",
            f"Issue: {issue_title}",
            f"Total Selected: {len(submissions)}",
            f"Successfully Downloaded: {added}",
            f"Failed Downloads: {failed}",
            f"Generated: {utcnow().isoformat()}",
            "",
            "Submission Details:",
            "==================",
        ]
        for index, submission in enumerate(submissions, start=1):
            lines.append(
                f"{index:03d}. {submission.user.nickname} (ID: {submission.id}) - "
                f"{submission.description or 'No description'}"
            )
        return "\n".join(lines) + "\n"

    async def build_selected_archive(
        self, db: AsyncSession, issue_id: int
    ) -> Optional[SelectedArchive]:
        """
        ZIP of the selected submissions of an issue.

        Returns None when the issue has no selected submissions.

        Raises:
            NotFoundError: issue does not exist
        """
        issue = await issue_service.get_issue_entity(db, issue_id)
        submissions = await submission_service.list_selected_entities(db, issue_id)
        if not submissions:
            return None

        buffer = io.BytesIO()
        added = 0
        failed = 0
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for submission in submissions:
                key = self.storage.key_from_url(submission.image_url)
                if key is None:
                    if submission.image_url:
                        failed += 1
                        logger.warning(
                            "Submission %d image is not in local storage: %s",
                            submission.id, submission.image_url,
                        )
                    continue
                try:
                    data = await self.storage.read(key)
                except MunichWeeklyError as e:
                    failed += 1
                    logger.warning("Failed to read submission %d image: %s", submission.id, e.message)
                    continue

                added += 1
                entry = (
                    f"{added:03d}_{sanitize_filename(submission.user.nickname)}_"
                    f"{submission.id}{extension_from_url(submission.image_url)}"
                )
                archive.writestr(entry, data)

            archive.writestr(SUMMARY_ENTRY, self._summary(issue.title, submissions, added, failed))

        logger.info(
            "Built archive for issue %d: %d added, %d failed", issue_id, added, failed
        )
        return SelectedArchive(
            filename=f"{sanitize_filename(issue.title)}_selected_submissions.zip",
            content=buffer.getvalue(),
            added=added,
            failed=failed,
        )


archive_service = ArchiveService()
