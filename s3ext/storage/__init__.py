"""S3 extension layer: file and stream transfers plus lazy listings."""

from .client import new_s3client_from_settings, new_s3client_with_credentials
from .extension import S3Ext
from .listing import GetObjectStream, ObjectStream, list_page
from .models import ObjectPage, ObjectRef, ObjectSummary, UploadResult
from .protocol import ByteSink, ByteSource, StorageHandle


__all__ = [
    "S3Ext",
    "new_s3client_with_credentials",
    "new_s3client_from_settings",
    "ObjectStream",
    "GetObjectStream",
    "list_page",
    "ObjectRef",
    "ObjectSummary",
    "ObjectPage",
    "UploadResult",
    "ByteSource",
    "ByteSink",
    "StorageHandle",
]
