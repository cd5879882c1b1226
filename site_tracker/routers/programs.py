from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import NotFoundError
from site_tracker.models import Program, RelatedEntityType, User
from site_tracker.repositories import programs as repo
from site_tracker.routers.common import request_id
from site_tracker.schemas import ProgramCreate, ProgramRead, ProgramUpdate
from site_tracker.security import require_editor, require_user

router = APIRouter(prefix="/api/programs", tags=["programs"])


@router.get("", response_model=list[ProgramRead], dependencies=[Depends(require_user)])
def list_programs(db: Session = Depends(get_db)) -> list[Program]:
    return repo.list_programs(db)


@router.get("/{program_pk}", response_model=ProgramRead, dependencies=[Depends(require_user)])
def get_program(program_pk: int, db: Session = Depends(get_db)) -> Program:
    program = repo.get_program(db, program_pk)
    if program is None:
        raise NotFoundError("Program")
    return program


@router.post("", response_model=ProgramRead, status_code=status.HTTP_201_CREATED)
def create_program(
    payload: ProgramCreate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Program:
    program = repo.create_program(db, payload)
    record_activity(
        db,
        activity_type="program_creation",
        description=f"Program {program.name} ({program.program_id}) created",
        entity_type=RelatedEntityType.PROGRAM,
        entity_id=program.id,
        performed_by=actor.id,
        metadata={"site_id": program.site_id, "status": program.status.value},
        request_id=request_id(request),
    )
    return program


@router.patch("/{program_pk}", response_model=ProgramRead)
def update_program(
    program_pk: int,
    payload: ProgramUpdate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Program:
    program = repo.update_program(db, program_pk, payload)
    changed = sorted(payload.model_fields_set)
    if changed:
        record_activity(
            db,
            activity_type="program_update",
            description=f"Program {program.name} ({program.program_id}) updated",
            entity_type=RelatedEntityType.PROGRAM,
            entity_id=program.id,
            performed_by=actor.id,
            metadata={"fields": changed},
            request_id=request_id(request),
        )
    return program


@router.delete("/{program_pk}", status_code=status.HTTP_204_NO_CONTENT)
def delete_program(
    program_pk: int,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> None:
    if not repo.delete_program(db, program_pk):
        raise NotFoundError("Program")
    record_activity(
        db,
        activity_type="program_deletion",
        description=f"Program {program_pk} deleted",
        entity_type=RelatedEntityType.PROGRAM,
        entity_id=program_pk,
        performed_by=actor.id,
        request_id=request_id(request),
    )
