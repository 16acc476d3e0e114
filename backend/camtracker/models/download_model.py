# backend/camtracker/models/download_model.py
from pydantic import BaseModel


class DownloadResult(BaseModel):
    """Outcome of a successful download + transcode"""

    local_path: str
    filename: str
    original_size: int
    final_size: int
    width: int
    height: int
    compression_ratio: int
    quality: int
    attempts: int
