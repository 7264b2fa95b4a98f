from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

from advanced_results import INTEGER, OBJECT_ID, STRING, FilterBuilder, Populate, advanced_results, populate
from database import BOOTCAMPS, REVIEWS, get_db, get_documents, object_id, serialize
from dependencies import authorize, ensure_owner
from repositories import BootcampRepository, ReviewRepository
from schemas import PublicUser, ReviewCreate, ReviewUpdate

router = APIRouter(tags=["reviews"])

REVIEW_FILTERS = FilterBuilder({
    "title": STRING,
    "text": STRING,
    "rating": INTEGER,
    "bootcamp": OBJECT_ID,
    "user": OBJECT_ID,
})

POPULATE_BOOTCAMP = Populate(field="bootcamp", collection=BOOTCAMPS, select=("name", "description"))

user_or_admin = authorize("user", "admin")


def get_review_or_404(reviews: ReviewRepository, review_id: str) -> dict:
    review = reviews.find_by_id(review_id)
    if not review:
        raise HTTPException(status_code=404, detail=f"No review found with the id of {review_id}")
    return review


@router.get("/reviews")
def get_reviews(results: dict = Depends(advanced_results(REVIEWS, REVIEW_FILTERS, POPULATE_BOOTCAMP))):
    return results


@router.get("/bootcamps/{bootcamp_id}/reviews")
def get_bootcamp_reviews(bootcamp_id: str, db: Database = Depends(get_db)):
    reviews = get_documents(db, REVIEWS, {"bootcamp": object_id(bootcamp_id)})
    return {"success": True, "count": len(reviews), "data": serialize(reviews)}


@router.get("/reviews/{review_id}")
def get_review(review_id: str, db: Database = Depends(get_db)):
    review = get_review_or_404(ReviewRepository(db), review_id)
    populate(db, [review], POPULATE_BOOTCAMP)
    return {"success": True, "data": serialize(review)}


@router.post("/bootcamps/{bootcamp_id}/reviews", status_code=201)
def add_review(
    bootcamp_id: str,
    payload: ReviewCreate,
    current_user: PublicUser = Depends(user_or_admin),
    db: Database = Depends(get_db),
):
    bootcamp = BootcampRepository(db).find_by_id(bootcamp_id)
    if not bootcamp:
        raise HTTPException(status_code=404, detail=f"No bootcamp with the id of {bootcamp_id}")

    data = payload.model_dump()
    data["bootcamp"] = bootcamp["_id"]
    data["user"] = object_id(current_user.id)
    review = ReviewRepository(db).create(data)
    return {"success": True, "data": serialize(review)}


@router.put("/reviews/{review_id}")
def update_review(
    review_id: str,
    payload: ReviewUpdate,
    current_user: PublicUser = Depends(user_or_admin),
    db: Database = Depends(get_db),
):
    reviews = ReviewRepository(db)
    review = get_review_or_404(reviews, review_id)
    ensure_owner(review, current_user, "update", "review")

    changes = payload.model_dump(exclude_none=True)
    if changes:
        review = reviews.update(review_id, changes)
    return {"success": True, "data": serialize(review)}


@router.delete("/reviews/{review_id}")
def delete_review(
    review_id: str,
    current_user: PublicUser = Depends(user_or_admin),
    db: Database = Depends(get_db),
):
    reviews = ReviewRepository(db)
    review = get_review_or_404(reviews, review_id)
    ensure_owner(review, current_user, "delete", "review")

    reviews.delete(review)
    return {"success": True, "data": {}}
