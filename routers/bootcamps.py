import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi import Path as PathParam
from pymongo.database import Database

import config
from advanced_results import BOOLEAN, NUMBER, OBJECT_ID, STRING, FilterBuilder, Populate, advanced_results
from database import BOOTCAMPS, COURSES, get_db, object_id, serialize
from dependencies import authorize, ensure_owner
from geocoder import Geocoder, get_geocoder
from repositories import BootcampRepository
from schemas import BootcampCreate, BootcampUpdate, PublicUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bootcamps", tags=["bootcamps"])

BOOTCAMP_FILTERS = FilterBuilder({
    "name": STRING,
    "slug": STRING,
    "description": STRING,
    "website": STRING,
    "phone": STRING,
    "email": STRING,
    "careers": STRING,
    "location.city": STRING,
    "location.state": STRING,
    "location.zipcode": STRING,
    "location.country": STRING,
    "housing": BOOLEAN,
    "job_assistance": BOOLEAN,
    "job_guarantee": BOOLEAN,
    "accept_gi": BOOLEAN,
    "average_cost": NUMBER,
    "average_rating": NUMBER,
    "photo": STRING,
    "user": OBJECT_ID,
})

publisher_or_admin = authorize("publisher", "admin")


def get_bootcamp_or_404(bootcamps: BootcampRepository, bootcamp_id: str) -> dict:
    bootcamp = bootcamps.find_by_id(bootcamp_id)
    if not bootcamp:
        raise HTTPException(status_code=404, detail=f"Bootcamp not found with id of {bootcamp_id}")
    return bootcamp


@router.get("")
def get_bootcamps(
    results: dict = Depends(advanced_results(
        BOOTCAMPS, BOOTCAMP_FILTERS, Populate(field="courses", collection=COURSES, foreign_field="bootcamp"),
    )),
):
    return results


@router.get("/radius/{zipcode}/{distance}")
def get_bootcamps_in_radius(
    zipcode: str,
    distance: float = PathParam(..., gt=0, allow_inf_nan=False, description="Radius in miles"),
    db: Database = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    locations = geocoder.geocode(zipcode)
    if not locations:
        raise HTTPException(status_code=400, detail=f"Could not geocode zipcode {zipcode}")

    loc = locations[0]
    bootcamps = BootcampRepository(db).within_radius(loc.latitude, loc.longitude, distance)
    return {"success": True, "count": len(bootcamps), "data": serialize(bootcamps)}


@router.get("/{bootcamp_id}")
def get_bootcamp(bootcamp_id: str, db: Database = Depends(get_db)):
    bootcamp = get_bootcamp_or_404(BootcampRepository(db), bootcamp_id)
    return {"success": True, "data": serialize(bootcamp)}


@router.post("", status_code=201)
def create_bootcamp(
    payload: BootcampCreate,
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    bootcamps = BootcampRepository(db, geocoder)

    # Publishers may own a single bootcamp
    if current_user.role != "admin" and bootcamps.owned_by(current_user.id):
        raise HTTPException(
            status_code=400,
            detail=f"The user with ID {current_user.id} has already published a bootcamp",
        )

    data = payload.model_dump()
    data["user"] = object_id(current_user.id)
    bootcamp = bootcamps.create(data)
    return {"success": True, "data": serialize(bootcamp)}


@router.put("/{bootcamp_id}")
def update_bootcamp(
    bootcamp_id: str,
    payload: BootcampUpdate,
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
):
    bootcamps = BootcampRepository(db, geocoder)
    bootcamp = get_bootcamp_or_404(bootcamps, bootcamp_id)
    ensure_owner(bootcamp, current_user, "update", "bootcamp")

    changes = payload.model_dump(exclude_none=True)
    if changes:
        bootcamp = bootcamps.update(bootcamp_id, changes)
    return {"success": True, "data": serialize(bootcamp)}


@router.delete("/{bootcamp_id}")
def delete_bootcamp(
    bootcamp_id: str,
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
):
    bootcamps = BootcampRepository(db)
    bootcamp = get_bootcamp_or_404(bootcamps, bootcamp_id)
    ensure_owner(bootcamp, current_user, "delete", "bootcamp")

    bootcamps.delete(bootcamp)
    return {"success": True, "data": {}}


@router.put("/{bootcamp_id}/photo")
def bootcamp_photo_upload(
    bootcamp_id: str,
    file: Optional[UploadFile] = File(None),
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
):
    bootcamps = BootcampRepository(db)
    bootcamp = get_bootcamp_or_404(bootcamps, bootcamp_id)
    ensure_owner(bootcamp, current_user, "update", "bootcamp")

    if file is None:
        raise HTTPException(status_code=400, detail="Please upload a file")
    if not (file.content_type or "").startswith("image"):
        raise HTTPException(status_code=400, detail="Please upload an image file")

    content = file.file.read()
    if len(content) > config.MAX_FILE_UPLOAD:
        raise HTTPException(
            status_code=400,
            detail=f"Please upload an image less than {config.MAX_FILE_UPLOAD} bytes",
        )

    filename = f"photo_{bootcamp['_id']}{Path(file.filename or '').suffix}"
    upload_dir = Path(config.FILE_UPLOAD_PATH)
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / filename).write_bytes(content)
    except OSError:
        logger.exception("Could not write %s", upload_dir / filename)
        raise HTTPException(status_code=500, detail="Problem with file upload")

    bootcamps.set_photo(bootcamp["_id"], filename)
    return {"success": True, "data": filename}
