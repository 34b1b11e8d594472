from datetime import date
from fastapi import APIRouter, Depends, Query, Response
from typing import Literal, Optional, List

from lastpiece.shared.auth import require_admin, require_super_admin
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.utils import SuccessResponse, PaginatedResponse
from lastpiece.auth.schemas import UserResponse

from lastpiece.admin import service
from lastpiece.admin.export import EXPORTERS, XLSX_MEDIA_TYPE
from lastpiece.admin.schemas import (
    AdminOrderResponse, DashboardStats, FinancialReport, RoleUpdate,
    SuperAdminStats, SystemSettings, SystemSettingsUpdate, UserAdminUpdate,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# --- Admin and super-admin ---

@router.get("/dashboard/stats", response_model=SuccessResponse[DashboardStats])
async def dashboard_stats(user: dict = Depends(require_admin), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.dashboard_stats(db))

@router.get("/users", response_model=PaginatedResponse[List[UserResponse]])
async def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    users, pagination = await service.list_users(db, page, limit, search, role, status)
    return PaginatedResponse(data=users, pagination=pagination)

@router.get("/users/{user_id}", response_model=SuccessResponse[UserResponse])
async def get_user(user_id: str, user: dict = Depends(require_admin), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_user(db, user_id))

@router.get("/orders", response_model=PaginatedResponse[List[AdminOrderResponse]])
async def list_orders(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = None,
    search: Optional[str] = None,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    orders, pagination = await service.list_orders(db, page, limit, status, search)
    return PaginatedResponse(data=orders, pagination=pagination)

@router.get("/orders/{order_id}", response_model=SuccessResponse[AdminOrderResponse])
async def get_order(order_id: str, user: dict = Depends(require_admin), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_order(db, order_id))

# --- Super-admin only ---

@router.put("/users/{user_id}", response_model=SuccessResponse[UserResponse])
async def update_user(
    user_id: str,
    body: UserAdminUpdate,
    user: dict = Depends(require_super_admin),
    db: Database = Depends(require_db),
):
    updated = await service.update_user(db, user_id, body)
    return SuccessResponse(data=updated, message="User updated successfully")

@router.put("/users/{user_id}/role", response_model=SuccessResponse[UserResponse])
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    user: dict = Depends(require_super_admin),
    db: Database = Depends(require_db),
):
    updated = await service.update_user_role(db, user_id, body)
    return SuccessResponse(data=updated, message="User role updated")

@router.put("/users/{user_id}/block", response_model=SuccessResponse[UserResponse])
async def block_user(user_id: str, user: dict = Depends(require_super_admin), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.block_user(db, user_id), message="User blocked")

@router.delete("/users/{user_id}", response_model=SuccessResponse[dict])
async def delete_user(user_id: str, user: dict = Depends(require_super_admin), db: Database = Depends(require_db)):
    await service.delete_user(db, user_id)
    return SuccessResponse(message="User deleted successfully")

@router.get("/super/stats", response_model=SuccessResponse[SuperAdminStats])
async def super_admin_stats(user: dict = Depends(require_super_admin), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.super_admin_stats(db))

@router.get("/super/financial-report", response_model=SuccessResponse[FinancialReport])
async def financial_report(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: dict = Depends(require_super_admin),
    db: Database = Depends(require_db),
):
    return SuccessResponse(data=await service.financial_report(db, start_date, end_date))

@router.get("/super/settings", response_model=SuccessResponse[SystemSettings])
async def get_system_settings(user: dict = Depends(require_super_admin), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_system_settings(db))

@router.put("/super/settings", response_model=SuccessResponse[SystemSettings])
async def update_system_settings(
    body: SystemSettingsUpdate,
    user: dict = Depends(require_super_admin),
    db: Database = Depends(require_db),
):
    updated = await service.update_system_settings(db, body)
    return SuccessResponse(data=updated, message="Settings updated successfully")

@router.get("/export/{resource}")
async def export_resource(
    resource: Literal["products", "users", "orders"],
    user: dict = Depends(require_super_admin),
    db: Database = Depends(require_db),
):
    content = await EXPORTERS[resource](db)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={resource}.xlsx"},
    )
