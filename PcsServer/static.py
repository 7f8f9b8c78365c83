# PcsServer/static.py
import os

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

router = APIRouter()


@router.get("/", include_in_schema=False)
def index(request: Request):
    index_file = request.app.state.index_file
    if not os.path.isfile(index_file):
        raise HTTPException(status_code=404, detail="UI entry document not found")
    return FileResponse(index_file, media_type="text/html")
