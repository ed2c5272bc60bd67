"""Authenticated download of stored reposition documents."""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.auth.deps import get_current_user
from app.models.user import User
from app.services.documents import resolve_stored_file

router = APIRouter()


@router.get("/{filename}")
async def download(filename: str, _user: User = Depends(get_current_user)):
    path = resolve_stored_file(filename)
    return FileResponse(path, filename=path.name)
