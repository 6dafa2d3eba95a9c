"""
Submission Form Binding

Binds the multipart submission form. Every field is checked independently
and every failure is reported, as "field: message".
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from starlette.datastructures import UploadFile

from dms_submission.submission.errors import SubmissionValidationError
from dms_submission.submission.models import SubmissionMetadata, SubmissionRequest

REQUIRED = "This field is required"
INVALID = "Invalid value"
INVALID_DATE = "Invalid date format"
NUMERIC_EXPECTED = "Numeric value expected"

TIME_OF_RECEIPT_FORMAT = "%Y-%m-%dT%H:%M:%S"

# strptime alone accepts unpadded fields
TIME_OF_RECEIPT_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}")
NUMBER_PATTERN = re.compile(r"[+-]?[0-9]+")

FILE_FIELD = "form"


class FieldError(ValueError):
    pass


def _text(value: str) -> str:
    return value


def _boolean(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered not in ("true", "false"):
        raise FieldError(INVALID)
    return lowered == "true"


def _time_of_receipt(value: str) -> datetime:
    value = value.strip()
    if not TIME_OF_RECEIPT_PATTERN.fullmatch(value):
        raise FieldError(INVALID_DATE)
    try:
        parsed = datetime.strptime(value, TIME_OF_RECEIPT_FORMAT)
    except ValueError:
        raise FieldError(INVALID_DATE)
    return parsed.replace(tzinfo=timezone.utc)


def _number(value: str) -> int:
    value = value.strip()
    if not NUMBER_PATTERN.fullmatch(value):
        raise FieldError(NUMERIC_EXPECTED)
    return int(value)


# form key -> (metadata field, parser), in manifest order
METADATA_FIELDS: List[Tuple[str, str, Callable[[str], Any]]] = [
    ("metadata.store", "store", _boolean),
    ("metadata.source", "source", _text),
    ("metadata.timeOfReceipt", "time_of_receipt", _time_of_receipt),
    ("metadata.formId", "form_id", _text),
    ("metadata.numberOfPages", "number_of_pages", _number),
    ("metadata.customerId", "customer_id", _text),
    ("metadata.submissionMark", "submission_mark", _text),
    ("metadata.casKey", "cas_key", _text),
    ("metadata.classificationType", "classification_type", _text),
    ("metadata.businessArea", "business_area", _text),
]


def format_error(key: str, message: str) -> str:
    return f"{key}: {message}"


def _field(form: Mapping[str, Any], key: str) -> Optional[str]:
    value = form.get(key)
    if value is None or isinstance(value, UploadFile):
        return None
    value = str(value)
    return value if value.strip() else None


def _bind_request(form: Mapping[str, Any], errors: List[str]) -> Optional[SubmissionRequest]:
    callback_url = _field(form, "callbackUrl")
    if callback_url is None:
        errors.append(format_error("callbackUrl", REQUIRED))

    metadata: Dict[str, Any] = {}
    for key, name, parse in METADATA_FIELDS:
        raw = _field(form, key)
        if raw is None:
            errors.append(format_error(key, REQUIRED))
            continue
        try:
            metadata[name] = parse(raw)
        except FieldError as e:
            errors.append(format_error(key, str(e)))

    if errors:
        return None

    return SubmissionRequest(
        id=_field(form, "id"),
        callback_url=callback_url,
        metadata=SubmissionMetadata(**metadata),
    )


def _bind_file(form: Mapping[str, Any], errors: List[str]) -> Optional[UploadFile]:
    upload = form.get(FILE_FIELD)
    if not isinstance(upload, UploadFile) or not upload.filename:
        errors.append(format_error(FILE_FIELD, REQUIRED))
        return None
    return upload


def bind_submission_form(form: Mapping[str, Any]) -> Tuple[SubmissionRequest, UploadFile]:
    """
    Bind the form fields and the file part.

    Raises SubmissionValidationError listing every problem found, form fields
    first, then the file.
    """
    form_errors: List[str] = []
    request = _bind_request(form, form_errors)

    file_errors: List[str] = []
    upload = _bind_file(form, file_errors)

    errors = form_errors + file_errors
    if errors:
        raise SubmissionValidationError(errors)
    return request, upload
