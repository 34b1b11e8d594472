from fastapi import APIRouter, Depends

from lastpiece.shared.auth import get_current_user
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.utils import SuccessResponse

from lastpiece.cart import service
from lastpiece.cart.schemas import CartItemAdd, CartItemRemove, CartItemUpdate, CartResponse, CouponApply

router = APIRouter(prefix="/api/cart", tags=["cart"])

@router.get("", response_model=SuccessResponse[CartResponse])
async def get_cart(user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_cart(db, user["id"]))

@router.post("/add", response_model=SuccessResponse[CartResponse])
async def add_to_cart(item: CartItemAdd, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    cart = await service.add_item(db, user["id"], item.product_id, item.quantity)
    return SuccessResponse(data=cart, message="Product added to cart")

@router.post("/remove", response_model=SuccessResponse[CartResponse])
async def remove_from_cart(item: CartItemRemove, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    cart = await service.remove_item(db, user["id"], item.product_id)
    return SuccessResponse(data=cart, message="Product removed from cart")

@router.put("/update", response_model=SuccessResponse[CartResponse])
async def update_cart_item(update: CartItemUpdate, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    cart = await service.update_item_quantity(db, user["id"], update.product_id, update.quantity)
    return SuccessResponse(data=cart, message="Cart updated")

@router.delete("/clear", response_model=SuccessResponse[CartResponse])
async def clear_cart(user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    cart = await service.clear_cart(db, user["id"])
    return SuccessResponse(data=cart, message="Cart cleared")

@router.post("/apply-coupon", response_model=SuccessResponse[CartResponse])
async def apply_coupon(body: CouponApply, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    cart = await service.apply_coupon(db, user["id"], body.coupon_code)
    return SuccessResponse(data=cart, message="Coupon applied")
