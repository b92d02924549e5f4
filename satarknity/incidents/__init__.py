"""
Satarknity - Incidents Module
Report submission, attachment staging and the incident feed.
"""

from satarknity.incidents.models import Incident
from satarknity.incidents.attachments import (
    Attachment,
    AttachmentStager,
    MediaFile,
    PreviewRegistry,
    StagingResult,
)
from satarknity.incidents.form import IncidentForm
from satarknity.incidents.feed import (
    FeedInvalidation,
    FeedSnapshot,
    FeedStatus,
    IncidentFeed,
    MediaKind,
    classify_media,
    format_timestamp,
)
from satarknity.incidents.submission import (
    IncidentSubmitter,
    SubmissionRun,
    SubmissionState,
    random_upload_name,
)

__all__ = [
    # Records
    "Incident",
    # Staging
    "Attachment",
    "AttachmentStager",
    "MediaFile",
    "PreviewRegistry",
    "StagingResult",
    "IncidentForm",
    # Feed
    "FeedInvalidation",
    "FeedSnapshot",
    "FeedStatus",
    "IncidentFeed",
    "MediaKind",
    "classify_media",
    "format_timestamp",
    # Submission
    "IncidentSubmitter",
    "SubmissionRun",
    "SubmissionState",
    "random_upload_name",
]
