from fastapi import APIRouter, Depends

from lastpiece.shared.auth import get_current_user
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.utils import SuccessResponse

from lastpiece.wishlist import service
from lastpiece.wishlist.schemas import WishlistItemAdd, WishlistResponse

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])

@router.get("", response_model=SuccessResponse[WishlistResponse])
async def get_wishlist(user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_wishlist(db, user["id"]))

@router.post("/add", response_model=SuccessResponse[WishlistResponse])
async def add_to_wishlist(item: WishlistItemAdd, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    wishlist = await service.add_item(db, user["id"], item.product_id)
    return SuccessResponse(data=wishlist, message="Product added to wishlist")

@router.post("/remove", response_model=SuccessResponse[WishlistResponse])
async def remove_from_wishlist(item: WishlistItemAdd, user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    wishlist = await service.remove_item(db, user["id"], item.product_id)
    return SuccessResponse(data=wishlist, message="Product removed from wishlist")

@router.delete("/clear", response_model=SuccessResponse[WishlistResponse])
async def clear_wishlist(user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    wishlist = await service.clear_wishlist(db, user["id"])
    return SuccessResponse(data=wishlist, message="Wishlist cleared")
