from fastapi import APIRouter, Depends, HTTPException

from finboard.api.dependencies import get_user_data_service, get_user_id
from finboard.core.logger import logger
from finboard.schemas.user_data import UserProfile
from finboard.services.user_data_service import UserDataService

router = APIRouter()


@router.get("/", response_model=UserProfile)
def get_profile(
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        return service.load(user_id).user_profile
    except Exception as e:
        logger.error(f"get_profile failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to fetch profile")


@router.put("/", response_model=UserProfile)
def update_profile(
        payload: UserProfile,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    try:
        user_data = service.load(user_id)
        user_data.user_profile = payload
        service.save(user_id, user_data)
        return user_data.user_profile
    except Exception as e:
        logger.error(f"update_profile failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to update profile")
