"""Equipment endpoints - sharing items that appear in the feed."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from campus_insider.dependencies import get_current_user, get_db
from campus_insider.models.equipment import Equipment
from campus_insider.models.user import User
from campus_insider.schemas.equipment import EquipmentCreate, EquipmentUpdate
from campus_insider.schemas.feed import EquipmentView
from campus_insider.services.sources import MalformedSourceRecord, project_views, to_equipment_view

router = APIRouter(prefix="/api/equipment", tags=["equipment"])


async def _get_equipment(db: AsyncSession, equipment_id: int) -> Equipment:
    stmt = (
        select(Equipment)
        .options(joinedload(Equipment.owner))
        .where(Equipment.id == equipment_id)
    )
    result = await db.execute(stmt)
    equipment = result.scalar_one_or_none()

    if equipment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )
    return equipment


def _require_owner(equipment: Equipment, user: User) -> None:
    if equipment.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner can modify this equipment",
        )


@router.get("", response_model=list[EquipmentView])
async def list_equipment(
    owner_id: int | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[EquipmentView]:
    """List shared equipment, newest first, optionally for a single owner."""
    stmt = (
        select(Equipment)
        .options(joinedload(Equipment.owner))
        .order_by(Equipment.created_at.desc(), Equipment.id.desc())
    )
    if owner_id is not None:
        stmt = stmt.where(Equipment.owner_id == owner_id)

    result = await db.execute(stmt)
    return project_views("equipment", result.scalars().all(), to_equipment_view)


@router.get("/{equipment_id}", response_model=EquipmentView)
async def get_equipment(
    equipment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> EquipmentView:
    """Fetch one piece of equipment. Records whose owner is gone are not found."""
    equipment = await _get_equipment(db, equipment_id)
    try:
        return to_equipment_view(equipment)
    except MalformedSourceRecord:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Equipment not found",
        )


@router.post(
    "",
    response_model=EquipmentView,
    status_code=status.HTTP_201_CREATED,
)
async def share_equipment(
    body: EquipmentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> EquipmentView:
    """Share a new piece of equipment owned by the current user."""
    equipment = Equipment(
        owner=current_user,
        name=body.name,
        category=body.category,
        description=body.description,
    )
    db.add(equipment)
    await db.flush()

    return to_equipment_view(equipment)


@router.patch("/{equipment_id}", response_model=EquipmentView)
async def update_equipment(
    equipment_id: int,
    body: EquipmentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> EquipmentView:
    """Update name, category or description. Owner only.

    Omitted fields are left unchanged; name and category cannot be cleared.
    """
    equipment = await _get_equipment(db, equipment_id)
    _require_owner(equipment, current_user)

    if body.name is not None:
        equipment.name = body.name
    if body.category is not None:
        equipment.category = body.category
    # an explicit null clears the description
    if "description" in body.model_fields_set:
        equipment.description = body.description

    await db.flush()

    return to_equipment_view(equipment)


@router.delete("/{equipment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unshare_equipment(
    equipment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Stop sharing a piece of equipment. Owner only."""
    equipment = await _get_equipment(db, equipment_id)
    _require_owner(equipment, current_user)

    await db.delete(equipment)
    await db.flush()

    return Response(status_code=status.HTTP_204_NO_CONTENT)
