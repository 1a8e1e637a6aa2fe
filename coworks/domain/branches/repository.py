"""Branch repository - Database operations for branches"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Branch, Seat, SeatingType


class BranchRepository:
    """Repository for branch database operations"""

    @staticmethod
    def get_branches(db: Session, search: Optional[str] = None, include_inactive: bool = False) -> list[Branch]:
        query = db.query(Branch)
        if not include_inactive:
            query = query.filter(Branch.is_active.is_(True))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Branch.name.ilike(pattern),
                    Branch.city.ilike(pattern),
                    Branch.location.ilike(pattern),
                )
            )
        return query.order_by(Branch.name).all()

    @staticmethod
    def get_by_id(db: Session, branch_id: int) -> Optional[Branch]:
        return db.query(Branch).filter(Branch.id == branch_id).first()

    @staticmethod
    def get_by_short_code(db: Session, short_code: str) -> Optional[Branch]:
        return db.query(Branch).filter(Branch.short_code == short_code.upper()).first()

    @staticmethod
    def get_by_code_or_id(db: Session, code_or_id: str) -> Optional[Branch]:
        if code_or_id.isdigit():
            return BranchRepository.get_by_id(db, int(code_or_id))
        return BranchRepository.get_by_short_code(db, code_or_id)

    @staticmethod
    def get_branch_seats(db: Session, branch_id: int, seating_type_code: Optional[str] = None) -> list[Seat]:
        query = (
            db.query(Seat)
            .join(SeatingType, Seat.seating_type_id == SeatingType.id)
            .options(joinedload(Seat.seating_type))
            .filter(Seat.branch_id == branch_id)
        )
        if seating_type_code:
            query = query.filter(SeatingType.short_code == seating_type_code.upper())
        return query.order_by(Seat.id).all()

    @staticmethod
    def get_seating_types(db: Session) -> list[SeatingType]:
        return db.query(SeatingType).order_by(SeatingType.name).all()

    @staticmethod
    def create(db: Session, **fields) -> Branch:
        branch = Branch(**fields)
        db.add(branch)
        db.commit()
        db.refresh(branch)
        return branch

    @staticmethod
    def update(db: Session, branch: Branch, **fields) -> Branch:
        for key, value in fields.items():
            setattr(branch, key, value)
        db.commit()
        db.refresh(branch)
        return branch
