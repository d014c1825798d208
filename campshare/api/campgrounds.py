from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import ValidationError
from typing import List, Optional

from campshare.api.deps import get_campground_service, is_author, is_logged_in
from campshare.api.serializers import serialize_campground
from campshare.models.campground import CampgroundCreate, CampgroundUpdate
from campshare.services.campgrounds import NEARBY_MAX_DISTANCE, CampgroundService
from campshare.services.errors import ValidationFailed

router = APIRouter(prefix="/campgrounds", tags=["campgrounds"])


def format_validation_error(error: ValidationError) -> str:
    messages = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"])
        messages.append(f"{field}: {detail['msg']}" if field else detail["msg"])
    return ", ".join(messages)


def parse_form(model, **fields):
    # Absent form fields are left out so the schema decides what is required
    data = {name: value for name, value in fields.items() if value is not None}
    try:
        return model(**data)
    except ValidationError as e:
        raise ValidationFailed(format_validation_error(e))


@router.get("")
def list_campgrounds(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    sort: Optional[str] = None,
    q: Optional[str] = None,
    service: CampgroundService = Depends(get_campground_service)
):
    result = service.list(page=page, limit=limit, sort=sort, q=q)
    result["items"] = [serialize_campground(c) for c in result["items"]]
    return result


@router.get("/nearby")
def nearby_campgrounds(
    lng: float = Query(..., ge=-180, le=180),
    lat: float = Query(..., ge=-90, le=90),
    maxDistance: float = Query(NEARBY_MAX_DISTANCE, gt=0),
    service: CampgroundService = Depends(get_campground_service)
):
    """Campgrounds within maxDistance metres of a point, nearest first."""
    items = []
    for campground, distance in service.nearby(lng, lat, max_distance=maxDistance):
        item = serialize_campground(campground)
        item["distance"] = round(distance, 1)
        items.append(item)
    return {"items": items}


@router.post("", status_code=201)
def create_campground(
    title: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    geometry: Optional[str] = Form(None),
    image: Optional[List[UploadFile]] = File(None),
    user=Depends(is_logged_in),
    service: CampgroundService = Depends(get_campground_service)
):
    fields = parse_form(
        CampgroundCreate,
        title=title, location=location, price=price, description=description, geometry=geometry
    )
    campground = service.create(user.id, fields, image or [])
    return {
        "campground": serialize_campground(campground, detailed=True),
        "message": "Successfully made a new campground!"
    }


@router.get("/{campground_id}")
def get_campground(campground_id: int, service: CampgroundService = Depends(get_campground_service)):
    campground = service.get(campground_id)
    return serialize_campground(campground, detailed=True)


@router.put("/{campground_id}")
def update_campground(
    campground_id: int,
    title: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    geometry: Optional[str] = Form(None),
    image: Optional[List[UploadFile]] = File(None),
    delete_images: Optional[List[str]] = Form(None, alias="deleteImages"),
    user=Depends(is_author),
    service: CampgroundService = Depends(get_campground_service)
):
    fields = parse_form(
        CampgroundUpdate,
        title=title, location=location, price=price, description=description, geometry=geometry
    )
    campground = service.update(campground_id, fields, image or [], delete_images)
    return {
        "campground": serialize_campground(campground, detailed=True),
        "message": "Successfully updated campground!"
    }


@router.delete("/{campground_id}")
def delete_campground(
    campground_id: int,
    user=Depends(is_author),
    service: CampgroundService = Depends(get_campground_service)
):
    service.delete(campground_id)
    return {"message": "Successfully deleted campground!"}
