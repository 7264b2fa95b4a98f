from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database

from advanced_results import BOOLEAN, INTEGER, NUMBER, OBJECT_ID, STRING, FilterBuilder, Populate, advanced_results, populate
from database import BOOTCAMPS, COURSES, get_db, get_documents, object_id, serialize
from dependencies import authorize, ensure_owner
from repositories import BootcampRepository, CourseRepository
from schemas import CourseCreate, CourseUpdate, PublicUser

router = APIRouter(tags=["courses"])

COURSE_FILTERS = FilterBuilder({
    "title": STRING,
    "description": STRING,
    "weeks": INTEGER,
    "tuition": NUMBER,
    "minimum_skill": STRING,
    "scholarship_available": BOOLEAN,
    "bootcamp": OBJECT_ID,
    "user": OBJECT_ID,
})

POPULATE_BOOTCAMP = Populate(field="bootcamp", collection=BOOTCAMPS, select=("name", "description"))

publisher_or_admin = authorize("publisher", "admin")


def get_course_or_404(courses: CourseRepository, course_id: str) -> dict:
    course = courses.find_by_id(course_id)
    if not course:
        raise HTTPException(status_code=404, detail=f"No course with the id of {course_id}")
    return course


@router.get("/courses")
def get_courses(results: dict = Depends(advanced_results(COURSES, COURSE_FILTERS, POPULATE_BOOTCAMP))):
    return results


@router.get("/bootcamps/{bootcamp_id}/courses")
def get_bootcamp_courses(bootcamp_id: str, db: Database = Depends(get_db)):
    courses = get_documents(db, COURSES, {"bootcamp": object_id(bootcamp_id)})
    return {"success": True, "count": len(courses), "data": serialize(courses)}


@router.get("/courses/{course_id}")
def get_course(course_id: str, db: Database = Depends(get_db)):
    course = get_course_or_404(CourseRepository(db), course_id)
    populate(db, [course], POPULATE_BOOTCAMP)
    return {"success": True, "data": serialize(course)}


@router.post("/bootcamps/{bootcamp_id}/courses", status_code=201)
def add_course(
    bootcamp_id: str,
    payload: CourseCreate,
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
):
    bootcamp = BootcampRepository(db).find_by_id(bootcamp_id)
    if not bootcamp:
        raise HTTPException(status_code=404, detail=f"No bootcamp with the id of {bootcamp_id}")
    ensure_owner(bootcamp, current_user, "add a course to", "bootcamp")

    data = payload.model_dump()
    data["bootcamp"] = bootcamp["_id"]
    data["user"] = object_id(current_user.id)
    course = CourseRepository(db).create(data)
    return {"success": True, "data": serialize(course)}


@router.put("/courses/{course_id}")
def update_course(
    course_id: str,
    payload: CourseUpdate,
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
):
    courses = CourseRepository(db)
    course = get_course_or_404(courses, course_id)
    ensure_owner(course, current_user, "update", "course")

    changes = payload.model_dump(exclude_none=True)
    if changes:
        course = courses.update(course_id, changes)
    return {"success": True, "data": serialize(course)}


@router.delete("/courses/{course_id}")
def delete_course(
    course_id: str,
    current_user: PublicUser = Depends(publisher_or_admin),
    db: Database = Depends(get_db),
):
    courses = CourseRepository(db)
    course = get_course_or_404(courses, course_id)
    ensure_owner(course, current_user, "delete", "course")

    courses.delete(course)
    return {"success": True, "data": {}}
