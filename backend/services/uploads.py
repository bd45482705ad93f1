"""Exercise video storage on the local upload directory."""
from fastapi import HTTPException, UploadFile
from pathlib import Path
import uuid

from config import UPLOAD_DIR, ALLOWED_VIDEO_EXTENSIONS, MAX_VIDEO_SIZE


async def store_video(file: UploadFile, upload_dir: Path = UPLOAD_DIR) -> dict:
    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_VIDEO_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"File type {ext or 'unknown'} not allowed. Use: {', '.join(ALLOWED_VIDEO_EXTENSIONS)}")
    contents = await file.read()
    if len(contents) > MAX_VIDEO_SIZE:
        raise HTTPException(status_code=400, detail=f"File too large. Max {MAX_VIDEO_SIZE // (1024 * 1024)} MB.")
    filename = f"{uuid.uuid4().hex}{ext}"
    with open(upload_dir / filename, "wb") as f:
        f.write(contents)
    return {"url": f"/api/uploads/{filename}", "filename": filename, "format": ALLOWED_VIDEO_EXTENSIONS[ext]}
