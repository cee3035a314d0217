import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...database import get_db
from ..audit.service import AuditService
from .service import BackupError, encrypt_secrets, export_manager

router = APIRouter(prefix="/admin/backup", tags=["Admin Backup"])


class ExportRequest(BaseModel):
    password: str = Field(min_length=8, max_length=200)


@router.post("/export")
async def start_export(
    data: ExportRequest,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    job = export_manager.start(data.password, actor.id)
    AuditService(db).log(
        actor, "BACKUP_EXPORT_START", "BACKUP", job.id, metadata={"jobId": job.id, "status": job.status}, request=request
    )
    return job.to_dict()


@router.get("/export/{job_id}")
async def export_status(job_id: str, _: Actor = Depends(require_boss)):
    job = export_manager.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()


@router.get("/export/{job_id}/download")
async def download_export(
    job_id: str,
    request: Request,
    dlToken: str = Query(...),
    db: Session = Depends(get_db),
):
    """Authorised by the signed dlToken alone so browsers can download natively"""
    try:
        job = export_manager.resolve_download(job_id, dlToken)
    except BackupError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    AuditService(db).log(None, "BACKUP_EXPORT_DOWNLOAD", "BACKUP", job_id, metadata={"jobId": job_id}, request=request)
    return FileResponse(
        job.path,
        media_type="application/octet-stream",
        filename=job.filename,
        headers={"Cache-Control": "no-store"},
    )


@router.post("/export-secrets")
async def export_secrets(
    data: ExportRequest,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    # scrypt key derivation is CPU-bound
    filename, payload = await asyncio.to_thread(encrypt_secrets, data.password)
    AuditService(db).log(actor, "BACKUP_EXPORT_SECRETS", "BACKUP", request=request)
    return Response(
        content=payload,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"', "Cache-Control": "no-store"},
    )


@router.post("/restore")
async def restore_backup(_: Actor = Depends(require_boss)):
    raise HTTPException(
        status_code=410,
        detail="Self-serve restore is not supported in this environment; contact engineering to restore.",
    )
