# controller/job_controller.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import PlainTextResponse, StreamingResponse
from model.job import DomainJobStatus
from service.job_service import JobService
from util.constants import InternalURIs
from util.functions import parse_part
from controller.controller_dependencies import (
    get_job_service,
    enforce_max_upload_size,
    limited_body,
    rate_limit_dependencies,
)

job_router = APIRouter(dependencies=rate_limit_dependencies())


@job_router.post(
    InternalURIs.JOBS,
    status_code=status.HTTP_202_ACCEPTED,
    response_class=PlainTextResponse,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def create_job(
    request: Request,
    batch: Optional[str] = Query(default=None),
    service: JobService = Depends(get_job_service),
) -> PlainTextResponse:
    job_id = await service.submit(limited_body(request), use_managed_backend=batch == "1")
    return PlainTextResponse(job_id, status_code=status.HTTP_202_ACCEPTED)


@job_router.get(InternalURIs.JOBS, response_model=List[DomainJobStatus])
async def list_jobs(
    service: JobService = Depends(get_job_service),
) -> List[DomainJobStatus]:
    return await service.list_jobs()


@job_router.get(InternalURIs.JOB, response_model=DomainJobStatus)
async def get_job(
    job_id: str,
    service: JobService = Depends(get_job_service),
) -> DomainJobStatus:
    return await service.get_status(job_id)


@job_router.delete(InternalURIs.JOB, status_code=status.HTTP_202_ACCEPTED)
async def delete_job(
    job_id: str,
    service: JobService = Depends(get_job_service),
) -> Response:
    await service.delete(job_id)
    return Response(status_code=status.HTTP_202_ACCEPTED)


@job_router.get(InternalURIs.JOB_RESULT)
async def get_job_result(
    job_id: str,
    part: Optional[str] = Query(default=None),
    service: JobService = Depends(get_job_service),
) -> StreamingResponse:
    chunks = await service.open_result(job_id, parse_part(part))
    return StreamingResponse(chunks, media_type="application/octet-stream")
