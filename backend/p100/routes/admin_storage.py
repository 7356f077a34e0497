from __future__ import annotations
import time
from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.auth_deps import require_admin
from p100.db import get_session
from p100.routes.admin import ADMIN_PREFIX
from p100.schemas.admin import StorageItem, RenameRequest, FolderRequest, SweepReport
from p100.services.media import content_type_for_name
from p100.services.references import rename_stored_file, delete_stored_file
from p100.services.storage import BUCKETS, ObjectExists, ObjectStorage, StorageError, get_storage
from p100.services.validation import sanitize_file_name

router = APIRouter(prefix=f"{ADMIN_PREFIX}/storage", tags=["admin-storage"], dependencies=[Depends(require_admin)])
log = structlog.get_logger()


def _known_bucket(bucket: str) -> str:
    if bucket not in BUCKETS:
        raise HTTPException(status_code=404, detail=f"Unknown bucket: {bucket}")
    return bucket


def _clean_folder(folder: str | None) -> str:
    parts = [sanitize_file_name(p) for p in (folder or "").split("/")]
    return "/".join(p for p in parts if p and p not in (".", ".."))


@router.get("/{bucket}", response_model=list[StorageItem])
async def list_bucket(bucket: str, store: ObjectStorage = Depends(get_storage)):
    _known_bucket(bucket)
    try:
        items = store.list_objects(bucket)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return [StorageItem.model_validate(i) for i in items]


@router.post("/{bucket}/upload", status_code=201, response_model=list[StorageItem])
async def upload_files(
    bucket: str,
    files: list[UploadFile] = File(...),
    folder: str | None = Form(default=None),
    store: ObjectStorage = Depends(get_storage),
):
    _known_bucket(bucket)
    prefix = _clean_folder(folder)
    out = []
    for f in files:
        name = f"{int(time.time() * 1000)}-{sanitize_file_name(f.filename or 'file')}"
        path = f"{prefix}/{name}" if prefix else name
        data = await f.read()
        try:
            url = store.put_bytes(bucket, path, data, f.content_type or content_type_for_name(name))
        except StorageError as e:
            raise HTTPException(status_code=502, detail=str(e))
        out.append(StorageItem(name=name, path=path, bucket=bucket, public_url=url, size=len(data)))
    log.info("storage_uploaded", bucket=bucket, count=len(out))
    return out


@router.post("/{bucket}/folders", status_code=201, response_model=StorageItem)
async def create_folder(bucket: str, payload: FolderRequest, store: ObjectStorage = Depends(get_storage)):
    _known_bucket(bucket)
    folder = _clean_folder(payload.name)
    if not folder:
        raise HTTPException(status_code=422, detail="Folder name cannot be empty.")
    # Object stores have no folders; a placeholder object makes one appear
    path = f"{folder}/.placeholder"
    try:
        url = store.put_bytes(bucket, path, b"", "text/plain")
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return StorageItem(name=".placeholder", path=path, bucket=bucket, public_url=url, size=0)


@router.post("/{bucket}/rename", response_model=SweepReport)
async def rename_file(
    bucket: str,
    payload: RenameRequest,
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    _known_bucket(bucket)
    try:
        result = await rename_stored_file(session, store, bucket, payload.path, payload.new_name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ObjectExists as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))

    sweep = result.sweep
    if result.new_path == result.old_path:
        message = "File name unchanged."
    elif sweep.failed:
        message = f"File renamed; {sweep.failed} reference update(s) failed."
    else:
        message = f"File renamed and {sweep.updated} reference(s) updated."
    return SweepReport(
        success=True,
        message=message,
        old_url=result.old_url,
        new_url=result.new_url,
        updated=sweep.updated,
        failed=sweep.failed,
    )


@router.delete("/{bucket}", response_model=SweepReport)
async def delete_file(
    bucket: str,
    path: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    _known_bucket(bucket)
    try:
        sweep = await delete_stored_file(session, store, bucket, path)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    message = "File deleted."
    if sweep.failed:
        message = f"File deleted; {sweep.failed} reference update(s) failed."
    return SweepReport(
        success=True,
        message=message,
        old_url=store.public_url(bucket, path),
        updated=sweep.updated,
        failed=sweep.failed,
    )
