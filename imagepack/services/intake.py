# imagepack/services/intake.py
from typing import List, Optional, Union
from fastapi import HTTPException, status
from python_multipart import create_form_parser
from python_multipart.exceptions import FormParserError
from python_multipart.multipart import Field, File
from imagepack.models.batch import UploadItem
from imagepack.core.logging import get_logger

logger = get_logger(__name__)

FILES_FIELD = "files"
MULTIPART_TYPE = "multipart/form-data"


def _decode(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    return value.decode("utf-8", errors="replace")


def _read_part(part: Union[Field, File]) -> bytes:
    if isinstance(part, File):
        # Large parts are spooled to a temp file, closing deletes it
        try:
            part.file_object.seek(0)
            return part.file_object.read()
        finally:
            part.close()
    return part.value or b""


def read_upload_items(content_type: Optional[str], body: bytes) -> List[UploadItem]:
    """
    Collect uploaded files from a raw multipart body

    Every part under the ``files`` field with non-empty content is kept,
    whether or not it declares a filename; parts without one are named
    ``unknown``. Other fields, empty parts and non-multipart bodies yield
    nothing.

    Args:
        content_type: Content-Type header of the request
        body: Raw request body

    Returns:
        Upload items in the order they appeared in the body

    Raises:
        HTTPException: If the multipart body cannot be parsed
    """
    if not content_type or content_type.split(";")[0].strip().lower() != MULTIPART_TYPE:
        return []

    items: List[UploadItem] = []
    parse_errors: List[str] = []

    def on_part(part: Union[Field, File]) -> None:
        try:
            data = _read_part(part)
        except OSError as e:
            parse_errors.append(str(e))
            return

        field_name = _decode(part.field_name)
        if field_name != FILES_FIELD:
            logger.debug(f"Skipping form field: {field_name}")
            return
        filename = _decode(part.file_name) if isinstance(part, File) else None
        if not data:
            logger.debug(f"Skipping empty upload: {filename}")
            return
        if filename is None:
            logger.warning("Upload part without filename, naming it 'unknown'")
        items.append(UploadItem(name=filename or "unknown", data=data))

    try:
        parser = create_form_parser({"Content-Type": content_type}, on_part, on_part)
        parser.write(body)
        parser.finalize()
    except FormParserError as e:
        logger.warning(f"Malformed multipart body: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Malformed multipart body"
        )

    if parse_errors:
        logger.error(f"Could not read uploaded parts: {parse_errors}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not read uploaded files"
        )

    return items
