from fastapi import APIRouter, Depends

from campshare.api.deps import get_review_service, is_logged_in, is_review_author
from campshare.api.serializers import serialize_review
from campshare.models.review import ReviewCreate
from campshare.services.reviews import ReviewService

router = APIRouter(prefix="/campgrounds/{campground_id}/reviews", tags=["reviews"])


@router.post("", status_code=201)
def create_review(
    campground_id: int,
    payload: ReviewCreate,
    user=Depends(is_logged_in),
    service: ReviewService = Depends(get_review_service)
):
    review = service.create(campground_id, user.id, payload.rating, payload.body)
    return {"review": serialize_review(review), "message": "Created new review!"}


@router.delete("/{review_id}")
def delete_review(
    campground_id: int,
    review_id: int,
    user=Depends(is_review_author),
    service: ReviewService = Depends(get_review_service)
):
    service.delete(campground_id, review_id)
    return {"message": "Successfully deleted review!"}
