"""Split PNG data-URL signatures out of a submission for blob storage."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any

from week_contracts.keys import signature_blob_path
from week_contracts.validation import SubmissionRejected

PNG_DATA_URL_PREFIX = "data:image/png;base64,"
PNG_CONTENT_TYPE = "image/png"

# submission field -> blob role
SIGNATURE_FIELDS = {
    "signatureParticipant": "participant",
    "signatureParent": "parent",
}


@dataclass(slots=True)
class SignatureUpload:
    field: str
    path: str
    data: bytes
    content_type: str = PNG_CONTENT_TYPE


@dataclass(slots=True)
class SplitSubmission:
    record: dict[str, Any]
    uploads: list[SignatureUpload] = field(default_factory=list)

    @property
    def signature_paths(self) -> dict[str, str | None]:
        return self.record["signaturePaths"]


def is_png_data_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(PNG_DATA_URL_PREFIX)


def estimated_size(encoded: str) -> float:
    return len(encoded) * 3 / 4


def decode_png_payload(value: str, *, role: str, max_bytes: int) -> bytes:
    encoded = value[len(PNG_DATA_URL_PREFIX):]
    if estimated_size(encoded) > max_bytes:
        raise SubmissionRejected(
            f"{role.capitalize()} signature image too large",
            field=f"signature{role.capitalize()}",
        )
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SubmissionRejected(
            f"Bad Request: invalid base64 in {role} signature ({exc})",
            field=f"signature{role.capitalize()}",
        ) from None


def split_signatures(submission: dict[str, Any], *, key: str, max_bytes: int) -> SplitSubmission:
    """Return the record to store and the blobs to upload.

    PNG data URLs are decoded and replaced by a blob path under
    ``signaturePaths``; any other signature value stays inline.
    """

    record = dict(submission)
    signature_paths: dict[str, str | None] = {}
    uploads: list[SignatureUpload] = []

    for field_name, role in SIGNATURE_FIELDS.items():
        value = submission.get(field_name)
        if not is_png_data_url(value):
            signature_paths[field_name] = None
            continue
        data = decode_png_payload(value, role=role, max_bytes=max_bytes)
        path = signature_blob_path(key, role)
        uploads.append(SignatureUpload(field=field_name, path=path, data=data))
        signature_paths[field_name] = path
        del record[field_name]

    record["signaturePaths"] = signature_paths
    return SplitSubmission(record=record, uploads=uploads)
