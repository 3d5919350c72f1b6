from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import Principal, require_roles
from app.models.addon import Addon
from app.models.photographer import Photographer
from app.schemas.catalog import AddonIn, AddonPatch, PhotographerIn, PhotographerPatch
from app.services import catalog_service

router = APIRouter(tags=["catalog"])

STAFF = require_roles("admin", "staff")


def photographer_out(p: Photographer) -> dict:
    return {"id": p.id, "name": p.name, "phone": p.phone, "specialty": p.specialty, "isActive": p.is_active}

def addon_out(a: Addon) -> dict:
    return {"id": a.id, "name": a.name, "price": a.price, "applicableCategories": a.categories, "isActive": a.is_active}


@router.get("/photographers")
def list_photographers(activeOnly: bool = False, db: Session = Depends(get_db), me: Principal = Depends(STAFF)):
    return {"items": [photographer_out(p) for p in catalog_service.list_photographers(db, active_only=activeOnly)]}

@router.post("/photographers", status_code=201)
def create_photographer(body: PhotographerIn, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    return photographer_out(catalog_service.create_photographer(db, body, actor=me.subject))

@router.patch("/photographers/{photographer_id}")
def update_photographer(photographer_id: str, body: PhotographerPatch,
                        db: Session = Depends(get_db),
                        me: Principal = Depends(require_roles("admin"))):
    return photographer_out(catalog_service.update_photographer(db, photographer_id, body, actor=me.subject))

@router.delete("/photographers/{photographer_id}")
def delete_photographer(photographer_id: str, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    catalog_service.delete_photographer(db, photographer_id, actor=me.subject)
    return {"ok": True, "id": photographer_id}


@router.get("/addons")
def list_addons(activeOnly: bool = True, category: str | None = None, db: Session = Depends(get_db)):
    # public: the booking form lists add-ons for the chosen category
    return {"items": [addon_out(a) for a in catalog_service.list_addons(db, active_only=activeOnly, category=category)]}

@router.post("/addons", status_code=201)
def create_addon(body: AddonIn, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    return addon_out(catalog_service.create_addon(db, body, actor=me.subject))

@router.patch("/addons/{addon_id}")
def update_addon(addon_id: str, body: AddonPatch,
                 db: Session = Depends(get_db),
                 me: Principal = Depends(require_roles("admin"))):
    return addon_out(catalog_service.update_addon(db, addon_id, body, actor=me.subject))

@router.delete("/addons/{addon_id}")
def delete_addon(addon_id: str, db: Session = Depends(get_db), me: Principal = Depends(require_roles("admin"))):
    catalog_service.delete_addon(db, addon_id, actor=me.subject)
    return {"ok": True, "id": addon_id}
