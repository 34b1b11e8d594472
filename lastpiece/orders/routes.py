from fastapi import APIRouter, Depends, Query, status
from typing import Optional, List

from lastpiece.shared.auth import get_current_user, require_admin
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.email import Mailer, get_mailer
from lastpiece.shared.utils import SuccessResponse, PaginatedResponse

from lastpiece.orders import service
from lastpiece.orders.schemas import OrderCreate, OrderResponse, OrderStatusUpdate

router = APIRouter(prefix="/api/orders", tags=["orders"])

@router.post("", response_model=SuccessResponse[OrderResponse], status_code=status.HTTP_201_CREATED)
async def create_order(
    order: OrderCreate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(require_db),
    mailer: Mailer = Depends(get_mailer),
):
    created = await service.create_order(db, mailer, user, order)
    return SuccessResponse(data=created, message="Order created successfully")

@router.get("", response_model=PaginatedResponse[List[OrderResponse]])
async def list_orders(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = None,
    user: dict = Depends(get_current_user),
    db: Database = Depends(require_db),
):
    orders, pagination = await service.list_orders(db, user["id"], page, limit, status)
    return PaginatedResponse(data=orders, pagination=pagination)

@router.get("/{order_id}", response_model=SuccessResponse[OrderResponse])
async def get_order(order_id: str, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_order(db, user["id"], order_id))

@router.put("/{order_id}/status", response_model=SuccessResponse[OrderResponse])
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
    mailer: Mailer = Depends(get_mailer),
):
    order = await service.update_order_status(db, mailer, order_id, status_update)
    return SuccessResponse(data=order, message="Order status updated")

@router.put("/{order_id}/cancel", response_model=SuccessResponse[OrderResponse])
async def cancel_order(
    order_id: str,
    user: dict = Depends(get_current_user),
    db: Database = Depends(require_db),
    mailer: Mailer = Depends(get_mailer),
):
    order = await service.cancel_order(db, mailer, user, order_id)
    return SuccessResponse(data=order, message="Order cancelled successfully")
