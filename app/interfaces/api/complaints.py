"""Complaint API routes — list, detail, status updates, assignment, proof of resolution, SLA."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status

from app.interfaces.api.deps import get_current_user
from app.interfaces.deps import get_complaint_repository, get_image_store, get_messaging
from app.core.exceptions import AppError
from app.domain.models.complaint import STATUS_RESOLVED, STATUS_SUBMITTED
from app.domain.models.user import User
from app.domain.repositories.complaint_repository import ComplaintRepository
from app.domain.schemas.complaint import (
    AssignRequest,
    ComplaintCreate,
    ComplaintFilter,
    ComplaintRead,
    ComplaintStatusLiteral,
    PriorityLiteral,
    SLAStatusRead,
    StatusHistoryRead,
    StatusUpdateRequest,
)
from app.application.services.complaint_status_service import (
    assign_complaint,
    get_complaint_or_404,
    get_status_history,
    resolve_complaint,
    submit_complaint,
    update_complaint_status,
    validate_transition,
)
from app.application.services.sla_monitor import (
    get_policy,
    get_seconds_until_deadline,
    get_sla_status_display,
    is_sla_breached,
)
from app.core.clock import utcnow
from app.infrastructure.fcm import MessagingClient
from app.infrastructure.image_store import ResolutionImageStore
from app.scheduler.jobs import process_complaint_writes_job

router = APIRouter(prefix="/api/complaints", tags=["Complaints"])


@router.get("")
def list_complaints(
    status_filter: Optional[ComplaintStatusLiteral] = Query(None, alias="status"),
    department: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[PriorityLiteral] = None,
    city: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    repo: ComplaintRepository = Depends(get_complaint_repository),
    user: User = Depends(get_current_user),
):
    filters = ComplaintFilter(
        status=status_filter,
        department=department,
        category=category,
        priority=priority,
        city=city,
        page=page,
        page_size=page_size,
    )
    result = repo.get_with_filters(filters)
    result["items"] = [ComplaintRead.model_validate(c) for c in result["items"]]
    return result


@router.post("", response_model=ComplaintRead, status_code=status.HTTP_201_CREATED)
async def create_complaint(
    body: ComplaintCreate,
    background_tasks: BackgroundTasks,
    repo: ComplaintRepository = Depends(get_complaint_repository),
    messaging: MessagingClient = Depends(get_messaging),
    user: User = Depends(get_current_user),
):
    """Record a citizen complaint (sends the confirmation)."""
    complaint = await submit_complaint(repo, body, messaging=messaging)
    background_tasks.add_task(process_complaint_writes_job, messaging)
    return ComplaintRead.model_validate(complaint)


@router.get("/{complaint_id}", response_model=ComplaintRead)
def get_complaint(
    complaint_id: str,
    repo: ComplaintRepository = Depends(get_complaint_repository),
    user: User = Depends(get_current_user),
):
    return ComplaintRead.model_validate(get_complaint_or_404(repo, complaint_id))


@router.patch("/{complaint_id}/status", response_model=ComplaintRead)
async def change_status(
    complaint_id: str,
    body: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    repo: ComplaintRepository = Depends(get_complaint_repository),
    messaging: MessagingClient = Depends(get_messaging),
    images: ResolutionImageStore = Depends(get_image_store),
    user: User = Depends(get_current_user),
):
    """Status dropdown: any allowed transition, with optional assignment/notes/proof."""
    complaint = get_complaint_or_404(repo, complaint_id)
    # Reject the transition before any image reaches disk
    validate_transition(complaint.status or STATUS_SUBMITTED, body.status, body.notes)
    image_ref = images.store_reference(complaint_id, body.resolution_image) if body.resolution_image else None

    try:
        complaint = await update_complaint_status(
            repo,
            complaint_id,
            body.status,
            user.email,
            assigned_to=body.assigned_to,
            department=body.department,
            notes=body.notes,
            resolution_image=image_ref,
            messaging=messaging,
        )
    except AppError:
        if image_ref:
            images.discard(image_ref)
        raise
    background_tasks.add_task(process_complaint_writes_job, messaging)
    return ComplaintRead.model_validate(complaint)


@router.post("/{complaint_id}/assign", response_model=ComplaintRead)
async def assign(
    complaint_id: str,
    body: AssignRequest,
    background_tasks: BackgroundTasks,
    repo: ComplaintRepository = Depends(get_complaint_repository),
    messaging: MessagingClient = Depends(get_messaging),
    user: User = Depends(get_current_user),
):
    complaint = await assign_complaint(
        repo,
        complaint_id,
        body.assigned_to,
        body.department,
        user.email,
        notes=body.notes,
        messaging=messaging,
    )
    background_tasks.add_task(process_complaint_writes_job, messaging)
    return ComplaintRead.model_validate(complaint)


@router.post("/{complaint_id}/resolve", response_model=ComplaintRead)
async def resolve_with_proof(
    complaint_id: str,
    background_tasks: BackgroundTasks,
    notes: str = Form(...),
    image: UploadFile = File(...),
    repo: ComplaintRepository = Depends(get_complaint_repository),
    messaging: MessagingClient = Depends(get_messaging),
    images: ResolutionImageStore = Depends(get_image_store),
    user: User = Depends(get_current_user),
):
    """Capture proof of resolution (photo + notes) and resolve the complaint."""
    # Fail fast before writing the image for a complaint that does not exist or cannot be resolved
    complaint = get_complaint_or_404(repo, complaint_id)
    validate_transition(complaint.status or STATUS_SUBMITTED, STATUS_RESOLVED, notes)

    filename = image.filename or ""
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    image_ref = images.save(complaint_id, await image.read(), ext)

    try:
        complaint = await resolve_complaint(
            repo,
            complaint_id,
            user.email,
            notes,
            image_ref,
            messaging=messaging,
        )
    except AppError:
        images.discard(image_ref)
        raise
    background_tasks.add_task(process_complaint_writes_job, messaging)
    return ComplaintRead.model_validate(complaint)


@router.get("/{complaint_id}/history", response_model=list[StatusHistoryRead])
def complaint_history(
    complaint_id: str,
    repo: ComplaintRepository = Depends(get_complaint_repository),
    user: User = Depends(get_current_user),
):
    return [StatusHistoryRead.model_validate(h) for h in get_status_history(repo, complaint_id)]


@router.get("/{complaint_id}/sla", response_model=SLAStatusRead)
def complaint_sla(
    complaint_id: str,
    policy_name: Optional[str] = Query(None, alias="policy"),
    repo: ComplaintRepository = Depends(get_complaint_repository),
    user: User = Depends(get_current_user),
):
    complaint = get_complaint_or_404(repo, complaint_id)
    policy = get_policy(policy_name)
    now = utcnow()
    display = get_sla_status_display(complaint, now, policy)

    return SLAStatusRead(
        complaint_id=complaint.id,
        policy=policy.name,
        threshold_seconds=policy.threshold_for(complaint.priority).total_seconds(),
        breached=is_sla_breached(complaint, now, policy),
        seconds_remaining=get_seconds_until_deadline(complaint, now, policy),
        text=display["text"],
        level=display["level"],
        escalated_at=complaint.escalated_at,
    )
