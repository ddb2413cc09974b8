"""
StoredFile model describing an object written to the archive or staging store.
"""

from pydantic import BaseModel, Field


class StoredFile(BaseModel):
    """
    Attributes:
        url: Object URL (s3://bucket/key or the endpoint URL)
        bucket: Bucket the object was written to
        blob_name: Object key
        mime_type: Guessed MIME type of the payload
        size: Payload size in bytes
        notes: Free text recorded with the file metadata
    """

    url: str
    bucket: str
    blob_name: str = Field(..., min_length=1)
    mime_type: str = "application/octet-stream"
    size: int = Field(0, ge=0)
    notes: str = ""
