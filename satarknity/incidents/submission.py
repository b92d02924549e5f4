"""
Incident submission workflow.

    IDLE -> VALIDATING -> (UPLOADING_MEDIA) -> INSERTING -> IDLE
                 |                |                |
              REJECTED          FAILED           FAILED

REJECTED happens before any external call. FAILED leaves nothing committed:
uploads run one at a time and the record is only inserted once every
attachment has a URL.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from satarknity.core.config import settings
from satarknity.core.constants import UPLOAD_TOKEN_ALPHABET, UPLOAD_TOKEN_LENGTH
from satarknity.core.errors import (
    AuthenticationRequiredError,
    BackendError,
    ConfigurationError,
    InsertError,
    SatarknityError,
    SubmissionInProgressError,
    UploadError,
    ValidationError,
)
from satarknity.incidents.attachments import Attachment
from satarknity.incidents.feed import FeedInvalidation
from satarknity.incidents.form import IncidentForm
from satarknity.incidents.models import Incident
from satarknity.session.holder import SessionHolder

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    """Workflow states."""
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING_MEDIA = "uploading_media"
    INSERTING = "inserting"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class SubmissionRun:
    """
    Record of one submit call.

    Each call gets its own run, kept on the form as `last_submission`, so
    submissions from different forms never share state.
    """
    state: SubmissionState = SubmissionState.IDLE
    history: List[SubmissionState] = field(default_factory=list)
    outcome: Optional[SubmissionState] = None

    def transition(self, state: SubmissionState) -> None:
        logger.debug(f"Submission state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)


def random_upload_name(extension: str) -> str:
    """Random base-36 file name keeping the original extension."""
    token = "".join(
        secrets.choice(UPLOAD_TOKEN_ALPHABET) for _ in range(UPLOAD_TOKEN_LENGTH)
    )
    return f"{token}.{extension}"


class IncidentSubmitter:
    """
    Validates a form, uploads its attachments and inserts the incident.

    On success the form is reset and the feed is invalidated once. On any
    failure the form keeps its text and staged attachments for a retry.
    """

    def __init__(
        self,
        backend: Optional[Any],
        invalidation: FeedInvalidation,
        bucket: Optional[str] = None,
        table: Optional[str] = None,
        name_factory: Callable[[str], str] = random_upload_name,
    ):
        """
        Initialize the submitter.

        Args:
            backend: BackendClient, or None when the backend is not configured
            invalidation: Feed stale flag to mark after each insert
            bucket: Storage bucket for attachments
            table: Incidents table name
            name_factory: Builds an upload file name from an extension
        """
        self.backend = backend
        self.invalidation = invalidation
        self.bucket = bucket or settings.storage_bucket
        self.table = table or settings.incidents_table
        self.name_factory = name_factory

    def submit(self, form: IncidentForm, session: SessionHolder) -> Incident:
        """
        Run one submission.

        The run's states are recorded on `form.last_submission`.

        Raises:
            SubmissionInProgressError: the form is already submitting
            ConfigurationError: backend is not configured
            ValidationError: description or location missing
            AuthenticationRequiredError: no signed-in user
            UploadError: an attachment upload failed
            InsertError: the record insert failed
        """
        if not form.begin_submission():
            raise SubmissionInProgressError("A submission is already in progress")

        run = SubmissionRun()
        form.last_submission = run
        try:
            incident = self._run(run, form, session)
            run.outcome = SubmissionState.IDLE
            return incident
        except SatarknityError:
            run.outcome = run.state
            raise
        finally:
            form.end_submission()
            run.transition(SubmissionState.IDLE)

    def _run(self, run: SubmissionRun, form: IncidentForm, session: SessionHolder) -> Incident:
        run.transition(SubmissionState.VALIDATING)
        user = self._validate(run, form, session)

        attachments = list(form.attachments.attachments)
        media_urls: List[str] = []
        if attachments:
            run.transition(SubmissionState.UPLOADING_MEDIA)
            media_urls = self._upload_all(run, attachments, user.id, session.access_token)

        run.transition(SubmissionState.INSERTING)
        stored = self._insert(run, form, user.id, media_urls, session.access_token)

        # The record is committed; nothing below may fail the submission
        incident = self._to_incident(stored, form, user.id, media_urls)
        logger.info(
            f"Incident submitted by {user.id} with {len(media_urls)} attachment(s)"
        )
        form.clear()
        self.invalidation.invalidate()
        return incident

    def _reject(self, run: SubmissionRun, error: SatarknityError) -> SatarknityError:
        run.transition(SubmissionState.REJECTED)
        logger.info(f"Submission rejected: {error.message}")
        return error

    def _fail(self, run: SubmissionRun, error: SatarknityError) -> SatarknityError:
        run.transition(SubmissionState.FAILED)
        logger.error(f"Submission failed: {error.message}")
        return error

    def _validate(self, run: SubmissionRun, form: IncidentForm, session: SessionHolder):
        """First failure wins; nothing external is called before the text checks."""
        if self.backend is None:
            raise self._reject(run, ConfigurationError(
                "Supabase is not properly configured. Please set up your environment variables."
            ))

        if not form.description.strip():
            raise self._reject(run, ValidationError(
                "Please provide a description of the incident", field="description"
            ))

        if not form.location.strip():
            raise self._reject(run, ValidationError(
                "Please provide the location of the incident", field="location"
            ))

        user = session.current_user()
        if user is None:
            raise self._reject(run, AuthenticationRequiredError(
                "Please sign in to submit an alert"
            ))

        return user

    def _upload_all(
        self,
        run: SubmissionRun,
        attachments: List[Attachment],
        user_id: str,
        access_token: Optional[str],
    ) -> List[str]:
        """Upload sequentially; the first failure aborts and drops earlier URLs."""
        urls: List[str] = []
        for position, attachment in enumerate(attachments, start=1):
            media = attachment.file
            path = f"{user_id}/{self.name_factory(media.extension)}"
            try:
                self.backend.storage.upload(
                    self.bucket,
                    path,
                    media.data,
                    content_type=media.content_type,
                    access_token=access_token,
                )
            except BackendError as e:
                raise self._fail(run, UploadError(
                    f"Upload of {media.filename} failed: {e.message}",
                    {"attachment": position, "of": len(attachments)},
                )) from e

            urls.append(self.backend.storage.get_public_url(self.bucket, path))

        return urls

    def _insert(
        self,
        run: SubmissionRun,
        form: IncidentForm,
        user_id: str,
        media_urls: List[str],
        access_token: Optional[str],
    ) -> List[Dict[str, Any]]:
        row = {
            "user_id": user_id,
            "description": form.description,
            "location": form.location,
            "media_urls": media_urls,
        }
        try:
            return self.backend.tables.insert(self.table, row, access_token=access_token)
        except BackendError as e:
            raise self._fail(run, InsertError(f"Could not save incident: {e.message}")) from e

    def _to_incident(
        self,
        stored: List[Dict[str, Any]],
        form: IncidentForm,
        user_id: str,
        media_urls: List[str],
    ) -> Incident:
        """Incident from the returned row, or from what was sent when the row is missing or unusable."""
        if stored:
            try:
                return Incident.from_row(stored[0])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Stored incident row could not be read: {e}")

        return Incident(
            id=None,
            description=form.description,
            location=form.location,
            created_at=datetime.now(timezone.utc),
            media_urls=media_urls,
            user_id=user_id,
        )
