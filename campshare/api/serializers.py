from campshare.media.storage import thumbnail_url


def _iso(value):
    return value.isoformat() if value is not None else None


def serialize_user(user):
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
    }


def serialize_author(user):
    # Public view of a user: no email
    return {"id": user.id, "username": user.username}


def serialize_image(image):
    return {
        "id": image.id,
        "url": image.url,
        "filename": image.filename,
        "thumbnail": thumbnail_url(image.url),
    }


def serialize_review(review):
    return {
        "id": review.id,
        "rating": review.rating,
        "body": review.body,
        "campgroundId": review.campground_id,
        "author": serialize_author(review.author),
        "createdAt": _iso(review.created_at),
    }


def serialize_campground(campground, detailed=False):
    """
    Convert a campground row to a JSON-ready dict.

    The summary form (listings) carries a review count; the detailed form embeds every review with
    its author.
    """
    result = {
        "id": campground.id,
        "title": campground.title,
        "location": campground.location,
        "price": campground.price,
        "description": campground.description,
        "geometry": campground.geometry,
        "images": [serialize_image(image) for image in campground.images],
        "author": serialize_author(campground.author),
        "createdAt": _iso(campground.created_at),
        "updatedAt": _iso(campground.updated_at),
    }
    if detailed:
        result["reviews"] = [serialize_review(review) for review in campground.reviews]
    else:
        result["reviewCount"] = len(campground.reviews)
    return result
