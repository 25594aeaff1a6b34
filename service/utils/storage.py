"""Storage helpers for uploaded payment proof files."""

import uuid
from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from config import S3_BUCKET_NAME, logger, s3_client

# MIME/extension guards for uploads
ALLOWED_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg", ".webp"}
ALLOWED_MIMETYPES = {"application/pdf", "image/png", "image/jpeg", "image/webp"}

PROOF_KEY_PREFIX = "payment_proofs/"
PRESIGNED_URL_EXPIRY_SECONDS = 3600


def is_allowed_proof(filename: str, mimetype: str) -> bool:
    """Accept PDFs and common image formats by extension and MIME type."""
    ext_ok = Path(filename or "").suffix.lower() in ALLOWED_EXTENSIONS
    mime_ok = mimetype in ALLOWED_MIMETYPES
    return ext_ok and mime_ok


def _participant_folder(participant_id: str | None) -> str:
    """Participant id as the proof folder name; one path segment only."""
    folder = (participant_id or "").strip()
    if not folder:
        raise ValueError("A participant ID is required before uploading a payment proof")
    if "/" in folder or "\\" in folder:
        raise ValueError(f"Participant ID '{folder}' cannot be used as a proof folder")
    return folder


def payment_proof_s3_key(participant_id: str, filename: str) -> str:
    """Return a fresh S3 key for a participant's payment proof."""
    extension = Path(filename or "").suffix.lower()
    return f"{PROOF_KEY_PREFIX}{_participant_folder(participant_id)}/{uuid.uuid4().hex}{extension}"


def upload_payment_proof(proof: Any, key: str) -> bool:
    """
    Store an uploaded proof under ``key`` in the proof bucket.

    The upload's content type travels with the object so the presigned link
    opens the PDF or image in the browser instead of downloading it.

    Args:
        proof: Werkzeug ``FileStorage`` (or any file-like object).
        key: Key from ``payment_proof_s3_key``.

    Returns:
        True when the proof was stored, False when S3 rejected it.
    """
    stream = getattr(proof, "stream", proof)
    stream.seek(0)
    extra_args = {"ContentType": proof.mimetype} if getattr(proof, "mimetype", None) else None

    try:
        s3_client.upload_fileobj(Fileobj=stream, Bucket=S3_BUCKET_NAME, Key=key, ExtraArgs=extra_args)
    except (BotoCoreError, ClientError) as exc:
        logger.exception("Payment proof upload rejected", key=key, upload_name=getattr(proof, "filename", None), error=str(exc))
        return False

    logger.info("Stored payment proof", key=key, upload_name=getattr(proof, "filename", None), content_type=(extra_args or {}).get("ContentType"))
    return True


def proof_link(file_path: str) -> str:
    """Turn a stored file path into something a browser can open.

    Bucket keys get a presigned URL; anything else (external URLs) is
    returned unchanged.
    """
    if not file_path or not file_path.startswith(PROOF_KEY_PREFIX):
        return file_path
    try:
        return s3_client.generate_presigned_url("get_object", Params={"Bucket": S3_BUCKET_NAME, "Key": file_path}, ExpiresIn=PRESIGNED_URL_EXPIRY_SECONDS)
    except (BotoCoreError, ClientError):
        logger.exception("Failed to presign payment proof", key=file_path)
        return file_path
