"""
Database Schemas

MongoDB collection schemas and request bodies, defined with Pydantic.
Collection schemas are validated by the repositories before every insert;
request bodies are validated by FastAPI before a handler runs, so partial
updates re-run the same field constraints.

Collections: "users", "bootcamps", "courses", "reviews"
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["user", "publisher", "admin"]
SelfServiceRole = Literal["user", "publisher"]
Skill = Literal["beginner", "intermediate", "advanced"]
Career = Literal["Web Development", "Mobile Development", "UI/UX", "Data Science", "Business", "Other"]

Password = Annotated[str, Field(min_length=6, max_length=128)]
Name = Annotated[str, Field(min_length=1, max_length=100)]
BootcampName = Annotated[str, Field(min_length=1, max_length=50)]
BootcampDescription = Annotated[str, Field(min_length=1, max_length=500)]
Website = Annotated[str, Field(pattern=r"^https?://[^\s/$.?#].[^\s]*$")]
Phone = Annotated[str, Field(max_length=20)]
Careers = Annotated[List[Career], Field(min_length=1)]
Title = Annotated[str, Field(min_length=1, max_length=100)]
Rating = Annotated[int, Field(ge=1, le=10)]


# -------------------- Users --------------------
class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    """
    name: Name = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Unique email address")
    role: Role = Field("user", description="user | publisher | admin")
    password_hash: str = Field(..., description="BCrypt password hash")
    reset_password_token: Optional[str] = Field(None, description="SHA-256 of the pending reset token")
    reset_password_expire: Optional[datetime] = Field(None, description="Expiry of the pending reset token")


class RegisterRequest(BaseModel):
    name: Name
    email: EmailStr
    password: Password
    role: SelfServiceRole = "user"


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: Password


class UpdateDetailsRequest(BaseModel):
    name: Optional[Name] = None
    email: Optional[EmailStr] = None


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: Password


class UserCreate(BaseModel):
    name: Name
    email: EmailStr
    password: Password
    role: Role = "user"


class UserUpdate(BaseModel):
    name: Optional[Name] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None


class PublicUser(BaseModel):
    id: str
    name: str
    email: EmailStr
    role: Role


# -------------------- Bootcamps --------------------
class Location(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None


class BootcampFields(BaseModel):
    name: BootcampName
    description: BootcampDescription
    website: Optional[Website] = None
    phone: Optional[Phone] = None
    email: Optional[EmailStr] = None
    careers: Careers
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False


class BootcampCreate(BootcampFields):
    address: str = Field(..., min_length=1)


class BootcampUpdate(BaseModel):
    name: Optional[BootcampName] = None
    description: Optional[BootcampDescription] = None
    website: Optional[Website] = None
    phone: Optional[Phone] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, min_length=1)
    careers: Optional[Careers] = None
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None


class Bootcamp(BootcampFields):
    """
    Bootcamps collection schema
    Collection name: "bootcamps"
    average_cost and average_rating are written by the course and review hooks.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    slug: str
    location: Location
    photo: str = "no-photo.jpg"
    average_cost: Optional[int] = None
    average_rating: Optional[float] = Field(None, ge=1, le=10)
    user: ObjectId


# -------------------- Courses --------------------
class CourseCreate(BaseModel):
    title: Title
    description: str = Field(..., min_length=1)
    weeks: int = Field(..., ge=1)
    tuition: float = Field(..., ge=0)
    minimum_skill: Skill
    scholarship_available: bool = False


class CourseUpdate(BaseModel):
    title: Optional[Title] = None
    description: Optional[str] = Field(None, min_length=1)
    weeks: Optional[int] = Field(None, ge=1)
    tuition: Optional[float] = Field(None, ge=0)
    minimum_skill: Optional[Skill] = None
    scholarship_available: Optional[bool] = None


class Course(CourseCreate):
    """
    Courses collection schema
    Collection name: "courses"
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    bootcamp: ObjectId
    user: ObjectId


# -------------------- Reviews --------------------
class ReviewCreate(BaseModel):
    title: Title
    text: str = Field(..., min_length=1)
    rating: Rating


class ReviewUpdate(BaseModel):
    title: Optional[Title] = None
    text: Optional[str] = Field(None, min_length=1)
    rating: Optional[Rating] = None


class Review(ReviewCreate):
    """
    Reviews collection schema
    Collection name: "reviews"
    One review per user per bootcamp.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    bootcamp: ObjectId
    user: ObjectId
