"""Models describing stored backup blobs."""

from datetime import datetime

from pydantic import BaseModel


class BackupInfo(BaseModel):
    """One backup file in the object store."""

    file_name: str                  # bare file name, no namespace prefix
    blob_name: str                  # full object path
    upload_date: datetime | None = None
    file_size: int = 0
    download_url: str = ""
