"""
scorekeeper/services/participant_csv_service.py
CSV bulk upload of participants and of participant inactivations

Every row is handled in its own transaction. A row that fails is reported
with its row number, error code, reason and original fields; it never aborts
the rest of the file.
"""
import csv
import io
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from scorekeeper.config import settings
from scorekeeper.errors import APIError, BadRequestError, ErrorCode
from scorekeeper.orm import Gender, ParticipantType, Team
from scorekeeper.schemas.participant import ParticipantCreate
from scorekeeper.schemas.reports import (
    RowFailure,
    RegisteredRow,
    InactivatedRow,
    ParticipantRegistrationReport,
    ParticipantInactivationReport,
)
from scorekeeper.services import eligibility_validator as rules
from scorekeeper.services.entity_store import EntityStore
from scorekeeper.services.participant_service import ParticipantService

logger = logging.getLogger(__name__)

REGISTRATION_COLUMNS = ["name", "document", "gender", "type", "team"]
INACTIVATION_COLUMNS = ["document"]

# Data rows start on line 2, after the header
FIRST_ROW = 2


def _read_rows(text: str, required: List[str]) -> List[Dict[str, Optional[str]]]:
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    header = [h.strip().lower() for h in (reader.fieldnames or [])]
    missing = [column for column in required if column not in header]
    if missing:
        raise BadRequestError(
            f"CSV header is missing column(s): {', '.join(missing)}",
            details={"required": required, "found": header}
        )

    rows = []
    for raw in reader:
        row = {
            (key or "").strip().lower(): (value.strip() if isinstance(value, str) else value)
            for key, value in raw.items()
        }
        if not any(row.get(column) for column in required):
            continue
        rows.append({column: row.get(column) for column in required})
        if len(rows) > settings.CSV_MAX_ROWS:
            raise BadRequestError(
                f"CSV has more than {settings.CSV_MAX_ROWS} rows",
                details={"max_rows": settings.CSV_MAX_ROWS}
            )
    return rows


def parse_participant_csv(text: str) -> List[Dict[str, Optional[str]]]:
    """Rows of a registration CSV with header name, document, gender, type, team."""
    return _read_rows(text, REGISTRATION_COLUMNS)


def parse_inactivation_csv(text: str) -> List[Dict[str, Optional[str]]]:
    return _read_rows(text, INACTIVATION_COLUMNS)


def generate_problem_csv(failures: List[RowFailure]) -> bytes:
    """
    Offending rows with their original fields plus row number and reason.
    """
    columns: List[str] = []
    for failure in failures:
        for key in failure.fields:
            if key not in columns:
                columns.append(key)

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=["row"] + columns + ["code", "reason"])
    writer.writeheader()
    for failure in failures:
        writer.writerow({
            "row": failure.row,
            **{key: failure.fields.get(key) or "" for key in columns},
            "code": failure.code,
            "reason": failure.reason,
        })
    return output.getvalue().encode("utf-8")


def _enum_value(enum_cls, value: Optional[str]):
    try:
        return enum_cls((value or "").strip().upper())
    except ValueError:
        return None


class ParticipantCsvService:
    """Applies parsed CSV rows through the participant service"""

    @classmethod
    async def handle_registration_rows(
        cls,
        db: AsyncSession,
        rows: List[Dict[str, Optional[str]]]
    ) -> ParticipantRegistrationReport:
        report = ParticipantRegistrationReport(total=len(rows))
        service = ParticipantService(db)

        # Team names are resolved once for the whole file
        teams = await EntityStore(db).find_by(Team)
        team_ids = {team.name.strip().upper(): team.id for team in teams}

        for index, row in enumerate(rows, start=FIRST_ROW):
            failure = cls._check_registration_row(index, row, team_ids)
            if failure is not None:
                report.failures.append(failure)
                continue

            team_id = team_ids[row["team"].upper()]
            try:
                data = ParticipantCreate(
                    name=row["name"],
                    document=row["document"],
                    gender=_enum_value(Gender, row["gender"]),
                    type=_enum_value(ParticipantType, row["type"]),
                    team_id=team_id
                )
                aggregate = await service.save_participant(data)
            except ValidationError as e:
                report.failures.append(RowFailure(
                    row=index, code=ErrorCode.VALIDATION_ERROR, reason=str(e.errors()[0]["msg"]), fields=row
                ))
                continue
            except APIError as e:
                logger.warning(f"[CSV REGISTRATION] row {index} rejected: {e.code}")
                report.failures.append(RowFailure(row=index, code=e.code, reason=e.message, fields=row))
                continue

            report.registered.append(RegisteredRow(
                row=index,
                participant_id=aggregate.participant.id,
                document=aggregate.participant.document,
                team_id=team_id
            ))

        logger.info(
            f"[CSV REGISTRATION] rows={report.total} registered={len(report.registered)} "
            f"failed={len(report.failures)}"
        )
        return report

    @staticmethod
    def _check_registration_row(index: int, row: Dict, team_ids: Dict[str, int]) -> Optional[RowFailure]:
        missing = [column for column in REGISTRATION_COLUMNS if not row.get(column)]
        if missing:
            return RowFailure(
                row=index, code=ErrorCode.INVALID_INPUT,
                reason=f"Missing value(s): {', '.join(missing)}", fields=row
            )
        if not rules.is_valid_document(row["document"]):
            return RowFailure(
                row=index, code=ErrorCode.INVALID_DOCUMENT,
                reason=f"Document '{row['document']}' is not a valid national document id", fields=row
            )
        if _enum_value(Gender, row["gender"]) is None:
            return RowFailure(
                row=index, code=ErrorCode.INVALID_INPUT,
                reason=f"Unknown gender '{row['gender']}'", fields=row
            )
        if _enum_value(ParticipantType, row["type"]) is None:
            return RowFailure(
                row=index, code=ErrorCode.INVALID_INPUT,
                reason=f"Unknown participant type '{row['type']}'", fields=row
            )
        if row["team"].upper() not in team_ids:
            return RowFailure(
                row=index, code=ErrorCode.TEAM_NOT_FOUND,
                reason=f"Team '{row['team']}' does not exist", fields=row
            )
        return None

    @classmethod
    async def handle_inactivation_rows(
        cls,
        db: AsyncSession,
        rows: List[Dict[str, Optional[str]]]
    ) -> ParticipantInactivationReport:
        report = ParticipantInactivationReport(total=len(rows))
        service = ParticipantService(db)

        for index, row in enumerate(rows, start=FIRST_ROW):
            document = row.get("document")
            if not rules.is_valid_document(document):
                report.failures.append(RowFailure(
                    row=index, code=ErrorCode.INVALID_DOCUMENT,
                    reason=f"Document '{document}' is not a valid national document id", fields=row
                ))
                continue

            try:
                participant = await service.find_participant_by_document(document)
                if not participant.is_active:
                    report.failures.append(RowFailure(
                        row=index, code=ErrorCode.INACTIVE_ENTITY,
                        reason=f"Participant {participant.id} is already inactive", fields=row
                    ))
                    continue
                participant = await service.set_participant_active(participant.id, False)
            except APIError as e:
                logger.warning(f"[CSV INACTIVATION] row {index} rejected: {e.code}")
                report.failures.append(RowFailure(row=index, code=e.code, reason=e.message, fields=row))
                continue

            report.inactivated.append(InactivatedRow(
                row=index, participant_id=participant.id, document=participant.document
            ))

        logger.info(
            f"[CSV INACTIVATION] rows={report.total} inactivated={len(report.inactivated)} "
            f"failed={len(report.failures)}"
        )
        return report
