"""Committee expenditures (create/delete only)."""
from fastapi import APIRouter

from app.api.deps import AdminOnly
from app.db import to_object_id
from app.errors import NotFoundError
from app.models.expenditure import Expenditure, ExpenditureCreate

router = APIRouter()


def expenditure_out(e: Expenditure) -> dict:
    return {"id": str(e.id), "description": e.description, "amount": e.amount, "date": e.date}


@router.get("/")
async def list_expenditures(admin: AdminOnly):
    items = await Expenditure.find({}).sort("-date").to_list()
    return [expenditure_out(e) for e in items]


@router.post("/", status_code=201)
async def create_expenditure(data: ExpenditureCreate, admin: AdminOnly):
    e = Expenditure(description=data.description.strip(), amount=round(data.amount, 2))
    if data.date:
        e.date = data.date
    await e.insert()
    return expenditure_out(e)


@router.delete("/{expenditure_id}")
async def delete_expenditure(expenditure_id: str, admin: AdminOnly):
    e = await Expenditure.get(to_object_id(expenditure_id, "Expenditure"))
    if not e:
        raise NotFoundError("Expenditure not found")
    await e.delete()
    return {"message": "Expenditure has been deleted."}
