"""Gmail Unattach - Extract attachments from Gmail messages and slim the messages down."""

from gmail_unattach.core.annotator import VERSION as __version__
from gmail_unattach.core.models import (
    Email,
    ProcessEmailResult,
    ProcessFailure,
    ProcessOption,
    ProcessProgress,
    ProcessReport,
    ProcessSettings,
)
from gmail_unattach.pipeline.unattacher import Unattacher

__all__ = [
    "Email",
    "ProcessEmailResult",
    "ProcessFailure",
    "ProcessOption",
    "ProcessProgress",
    "ProcessReport",
    "ProcessSettings",
    "Unattacher",
    "__version__",
]
