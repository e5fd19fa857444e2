import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from wabco_booking.api.dependencies import get_db, require_admin
from wabco_booking.schemas.branch_schema import BranchCreate, BranchResponse, BranchUpdate
from wabco_booking.tools import branches as branch_tools

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/locations", tags=["Locations"])

# Fields an update may explicitly clear with null.
NULLABLE_FIELDS = frozenset({"lat", "lng", "subdomain"})


def _to_response(branch, distance: Optional[float] = None) -> BranchResponse:
    response = BranchResponse.model_validate(branch)
    response.distance = distance
    return response


@router.get("", response_model=list[BranchResponse])
def list_locations(
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    unit: Literal["km", "mi"] = Query(default="km"),
    db: Session = Depends(get_db),
):
    """All branches; nearest first when both lat and lng are given."""
    return [
        _to_response(branch, distance)
        for branch, distance in branch_tools.list_branches(db, lat, lng, unit)
    ]


@router.get("/{branch_id}", response_model=BranchResponse)
def get_location(branch_id: int, db: Session = Depends(get_db)):
    return _to_response(branch_tools.get_branch(db, branch_id))


@router.post(
    "", response_model=BranchResponse, status_code=201, dependencies=[Depends(require_admin)]
)
def create_location(payload: BranchCreate, db: Session = Depends(get_db)):
    return _to_response(branch_tools.create_branch(db, payload.model_dump()))


@router.put("/{branch_id}", response_model=BranchResponse, dependencies=[Depends(require_admin)])
def update_location(branch_id: int, payload: BranchUpdate, db: Session = Depends(get_db)):
    patch = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_FIELDS
    }
    return _to_response(branch_tools.update_branch(db, branch_id, patch))


@router.delete("/{branch_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_location(branch_id: int, db: Session = Depends(get_db)):
    branch_tools.delete_branch(db, branch_id)
    return Response(status_code=204)
