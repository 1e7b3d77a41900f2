"""
scorekeeper/routes/participants.py
Participant API Routes

Participant CRUD, edition / event registration of a single participant and
the CSV bulk uploads.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.database import get_db
from scorekeeper.errors import BadRequestError
from scorekeeper.orm import Gender, ParticipantType
from scorekeeper.routes.dependencies import require_feature
from scorekeeper.schemas.participant import (
    ParticipantCreate,
    ParticipantReplace,
    ParticipantStatusUpdate,
    ParticipantResponse,
    ParticipantDetailResponse,
    ParticipantPage,
)
from scorekeeper.schemas.registration import EditionRegistrationRequest, SingleEventRegistrationRequest
from scorekeeper.schemas.reports import (
    RowFailure,
    ParticipantRegistrationReport,
    ParticipantInactivationReport,
)
from scorekeeper.services.participant_csv_service import (
    ParticipantCsvService,
    parse_participant_csv,
    parse_inactivation_csv,
    generate_problem_csv,
)
from scorekeeper.services.participant_filters import (
    ParticipantFilter,
    NameContains,
    FromEdition,
    FromEvent,
    NotFromEvent,
    FromTeam,
    HasGender,
    HasType,
    HasStatus,
    WithoutIds,
)
from scorekeeper.services.participant_service import ParticipantService
from scorekeeper.services.registration_service import RegistrationService

router = APIRouter(prefix="/participants", tags=["Participants"])


def _detail(aggregate) -> ParticipantDetailResponse:
    return ParticipantDetailResponse.model_validate(aggregate, from_attributes=True)


async def _read_csv(file: UploadFile) -> str:
    if not (file.filename or "").lower().endswith(".csv"):
        raise BadRequestError("Only .csv files are accepted", details={"filename": file.filename})
    content = await file.read()
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        raise BadRequestError("CSV file must be UTF-8 encoded")


# ================= CSV UPLOADS =================
# Declared before /{participant_id} routes so the literal paths win

@router.post(
    "/csv/registrations",
    response_model=ParticipantRegistrationReport,
    dependencies=[Depends(require_feature("FEATURE_CSV_IMPORT"))]
)
async def upload_participant_csv(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Register every row of the CSV (name, document, gender, type, team) in the
    current edition. Rows fail independently.
    """
    rows = parse_participant_csv(await _read_csv(file))
    return await ParticipantCsvService.handle_registration_rows(db, rows)


@router.post(
    "/csv/inactivations",
    response_model=ParticipantInactivationReport,
    dependencies=[Depends(require_feature("FEATURE_CSV_IMPORT"))]
)
async def upload_inactivation_csv(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db)
):
    rows = parse_inactivation_csv(await _read_csv(file))
    return await ParticipantCsvService.handle_inactivation_rows(db, rows)


@router.post(
    "/csv/problems",
    dependencies=[Depends(require_feature("FEATURE_PROBLEM_CSV_EXPORT"))]
)
async def export_problem_csv(failures: List[RowFailure]):
    """Render the failures of an upload report back into a downloadable CSV."""
    return Response(
        content=generate_problem_csv(failures),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="problem_rows.csv"'}
    )


# ================= PARTICIPANTS =================

@router.get("", response_model=ParticipantPage)
async def list_participants(
    name: Optional[str] = None,
    edition_id: Optional[int] = None,
    event_id: Optional[int] = None,
    not_in_event_id: Optional[int] = None,
    team_id: Optional[int] = None,
    team_edition_id: Optional[int] = None,
    gender: Optional[Gender] = None,
    type: Optional[ParticipantType] = None,
    is_active: Optional[bool] = None,
    exclude_ids: Optional[List[int]] = Query(None),
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    order: Optional[str] = Query(None, pattern=r"^(a-z|z-a)$"),
    db: AsyncSession = Depends(get_db)
):
    participant_filter = ParticipantFilter.of(
        NameContains(name),
        FromEdition(edition_id),
        FromEvent(event_id),
        NotFromEvent(not_in_event_id),
        FromTeam(team_id, team_edition_id),
        HasGender(gender),
        HasType(type),
        HasStatus(is_active),
        WithoutIds(exclude_ids),
    )
    service = ParticipantService(db)
    items, total = await service.find_all_participants(participant_filter, page, size, order)
    return ParticipantPage(
        items=[ParticipantResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        size=len(items)
    )


@router.get("/document/{document}", response_model=ParticipantResponse)
async def get_participant_by_document(document: str, db: AsyncSession = Depends(get_db)):
    return await ParticipantService(db).find_participant_by_document(document)


@router.post("", response_model=ParticipantDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_participant(data: ParticipantCreate, db: AsyncSession = Depends(get_db)):
    """Create a participant and register it for a team in the current edition."""
    return _detail(await ParticipantService(db).save_participant(data))


@router.get("/{participant_id}", response_model=ParticipantDetailResponse)
async def get_participant(participant_id: int, db: AsyncSession = Depends(get_db)):
    return _detail(await ParticipantService(db).get_aggregate(participant_id))


@router.put("/{participant_id}", response_model=ParticipantDetailResponse)
async def replace_participant(participant_id: int, data: ParticipantReplace, db: AsyncSession = Depends(get_db)):
    return _detail(await ParticipantService(db).replace_participant(participant_id, data))


@router.delete("/{participant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_participant(participant_id: int, db: AsyncSession = Depends(get_db)):
    await ParticipantService(db).delete_participant(participant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{participant_id}/status", response_model=ParticipantResponse)
async def set_participant_status(participant_id: int, data: ParticipantStatusUpdate, db: AsyncSession = Depends(get_db)):
    return await ParticipantService(db).set_participant_active(participant_id, data.is_active)


# ================= REGISTRATIONS =================

@router.post("/{participant_id}/editions", response_model=ParticipantDetailResponse)
async def register_in_edition(
    participant_id: int,
    data: EditionRegistrationRequest,
    db: AsyncSession = Depends(get_db)
):
    """Register for a team in an edition, replacing any previous team in that edition."""
    aggregate = await RegistrationService(db).register_in_edition(participant_id, data.edition_id, data.team_id)
    return _detail(aggregate)


@router.delete("/{participant_id}/editions/{registration_id}", response_model=ParticipantDetailResponse)
async def remove_edition_registration(participant_id: int, registration_id: int, db: AsyncSession = Depends(get_db)):
    aggregate = await RegistrationService(db).delete_edition_registration(participant_id, registration_id)
    return _detail(aggregate)


@router.post("/{participant_id}/events", response_model=ParticipantDetailResponse)
async def register_in_event(
    participant_id: int,
    data: SingleEventRegistrationRequest,
    db: AsyncSession = Depends(get_db)
):
    aggregate = await RegistrationService(db).register_in_event(participant_id, data.event_id, data.team_id)
    return _detail(aggregate)


@router.delete("/{participant_id}/events/{registration_id}", response_model=ParticipantDetailResponse)
async def remove_event_registration(participant_id: int, registration_id: int, db: AsyncSession = Depends(get_db)):
    aggregate = await RegistrationService(db).delete_event_registration(participant_id, registration_id)
    return _detail(aggregate)
