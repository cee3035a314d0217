import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Artist, Branch, User
from ...models_booking import Appointment
from .schemas import BranchCreate, BranchResponse, BranchUpdate

logger = logging.getLogger(__name__)


class BranchService:
    def __init__(self, db: Session):
        self.db = db

    def _counts(self) -> dict[int, dict]:
        counts: dict[int, dict] = {}
        for model, key in ((User, "users"), (Artist, "artists"), (Appointment, "appointments")):
            rows = (
                self.db.query(model.branch_id, func.count(model.id))
                .filter(model.branch_id.isnot(None))
                .group_by(model.branch_id)
                .all()
            )
            for branch_id, count in rows:
                counts.setdefault(branch_id, {"users": 0, "artists": 0, "appointments": 0})[key] = count
        return counts

    def to_response(self, branch: Branch, counts: Optional[dict] = None) -> BranchResponse:
        return BranchResponse(
            id=branch.id,
            name=branch.name,
            address=branch.address,
            phone=branch.phone,
            businessHours=branch.business_hours,
            isActive=branch.is_active,
            createdAt=branch.created_at,
            counts=counts,
        )

    def list_branches(self, include_inactive: bool = False) -> list[BranchResponse]:
        query = self.db.query(Branch)
        if not include_inactive:
            query = query.filter(Branch.is_active.is_(True))
        counts = self._counts()
        empty = {"users": 0, "artists": 0, "appointments": 0}
        return [self.to_response(b, counts.get(b.id, empty)) for b in query.order_by(Branch.name).all()]

    def get_branch(self, branch_id: int) -> Branch:
        branch = self.db.query(Branch).filter(Branch.id == branch_id).first()
        if not branch:
            raise HTTPException(status_code=404, detail="Branch not found")
        return branch

    def create_branch(self, data: BranchCreate) -> Branch:
        branch = Branch(
            name=data.name,
            address=data.address,
            phone=data.phone,
            business_hours=data.businessHours,
        )
        self.db.add(branch)
        self.db.commit()
        self.db.refresh(branch)
        logger.info(f"🏪 Created branch {branch.name}")
        return branch

    def update_branch(self, branch_id: int, data: BranchUpdate) -> Branch:
        branch = self.get_branch(branch_id)
        if data.name is not None:
            branch.name = data.name
        if data.address is not None:
            branch.address = data.address
        if data.phone is not None:
            branch.phone = data.phone
        if data.businessHours is not None:
            branch.business_hours = data.businessHours
        if data.isActive is not None:
            branch.is_active = data.isActive
        self.db.commit()
        self.db.refresh(branch)
        return branch
