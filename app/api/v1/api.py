from fastapi import APIRouter
from app.api.v1.routes.bookings import router as bookings_router
from app.api.v1.routes.coupons import router as coupons_router
from app.api.v1.routes.catalog import router as catalog_router
from app.api.v1.routes.expenses import router as expenses_router
from app.api.v1.routes.leads import router as leads_router
from app.api.v1.routes.payment_methods import router as payment_methods_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings_router)
api_router.include_router(coupons_router)
api_router.include_router(catalog_router)
api_router.include_router(expenses_router)
api_router.include_router(leads_router)
api_router.include_router(payment_methods_router)
