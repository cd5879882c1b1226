from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from site_tracker.errors import InvalidRequestError, NotFoundError
from site_tracker.models import Program
from site_tracker.repositories.base import apply_changes, commit_or_conflict, ensure_site_exists
from site_tracker.schemas import ProgramCreate, ProgramUpdate

_PROGRAM_ID_TAKEN = "Program ID already exists"


def list_programs(db: Session) -> list[Program]:
    return list(db.scalars(select(Program).order_by(Program.name.asc(), Program.id.asc())).all())


def list_programs_for_site(db: Session, site_id: int) -> list[Program]:
    stmt = select(Program).where(Program.site_id == site_id).order_by(Program.name.asc(), Program.id.asc())
    return list(db.scalars(stmt).all())


def get_program(db: Session, program_pk: int) -> Program | None:
    return db.get(Program, program_pk)


def create_program(db: Session, payload: ProgramCreate) -> Program:
    ensure_site_exists(db, payload.site_id)

    program = Program(**payload.model_dump())
    db.add(program)
    commit_or_conflict(db, _PROGRAM_ID_TAKEN, code="PROGRAM_ID_TAKEN")
    db.refresh(program)
    return program


def update_program(db: Session, program_pk: int, payload: ProgramUpdate) -> Program:
    program = db.get(Program, program_pk)
    if program is None:
        raise NotFoundError("Program")

    changes = payload.changes()
    if not changes:
        return program

    if "site_id" in changes:
        ensure_site_exists(db, changes["site_id"])

    start_date = changes.get("start_date", program.start_date)
    end_date = changes.get("end_date", program.end_date)
    if start_date and end_date and end_date < start_date:
        raise InvalidRequestError("endDate must be on or after startDate", code="VALIDATION_ERROR")

    apply_changes(program, changes)
    commit_or_conflict(db, _PROGRAM_ID_TAKEN, code="PROGRAM_ID_TAKEN")
    db.refresh(program)
    return program


def delete_program(db: Session, program_pk: int) -> bool:
    program = db.get(Program, program_pk)
    if program is None:
        return False
    db.delete(program)
    db.commit()
    return True
