"""
Image endpoints - local uploads resized with Pillow
"""
from fastapi import APIRouter, HTTPException, UploadFile, File, Form
import uuid

from ...infrastructure.services.image_storage import LocalImageStorage
from ..errors import to_http_exception

router = APIRouter()


@router.post("/upload", status_code=201)
async def upload_image(file: UploadFile = File(...), folder: str = Form("products")):
    """Upload an image (product or location photo)"""
    try:
        content = await file.read()
        if not content:
            raise HTTPException(status_code=422, detail="Empty file")

        object_key = f"{folder.strip('/') or 'products'}/{uuid.uuid4()}.jpg"
        url = await LocalImageStorage().upload(content, object_key)

        return {
            "success": True,
            "object_key": object_key,
            "url": url,
        }
    except HTTPException:
        raise
    except Exception as e:
        raise to_http_exception(e)
