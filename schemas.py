"""
Business Directory Database Schemas

Each Pydantic model represents a MongoDB collection or a request body.
Collection names: businesses, categories, reviews, users, sessions.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

BusinessStatus = Literal["pending", "approved", "rejected"]
Role = Literal["admin", "user"]

BUSINESS_STATUSES = ("pending", "approved", "rejected")
REVIEW_STATUSES = ("visible", "hidden", "flagged")
ROLES = ("admin", "user")


class BusinessSubmission(BaseModel):
    """Canonical fields accepted from the public form and the admin form."""
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=120)
    subCategory: Optional[str] = Field(None, max_length=120)
    province: str = Field(..., min_length=1, max_length=120)
    city: str = Field(..., min_length=1, max_length=120)
    area: Optional[str] = Field(None, max_length=120)
    postalCode: str = Field(..., min_length=1, max_length=20)
    address: str = Field(..., min_length=1, max_length=500)
    phone: str = Field(..., min_length=1, max_length=50)
    whatsapp: Optional[str] = Field(None, max_length=50)
    email: EmailStr
    description: str = Field(..., min_length=1, max_length=4000)
    contactPerson: Optional[str] = Field(None, max_length=200)
    # Bank-specific
    swiftCode: Optional[str] = None
    branchCode: Optional[str] = None
    cityDialingCode: Optional[str] = None
    iban: Optional[str] = None
    # Get in touch links
    websiteUrl: Optional[str] = None
    facebookUrl: Optional[str] = None
    gmbUrl: Optional[str] = None
    youtubeUrl: Optional[str] = None


class Business(BusinessSubmission):
    slug: str = Field(..., min_length=1, max_length=140)
    logoUrl: Optional[str] = None
    logoPublicId: Optional[str] = None
    logoDataUrl: Optional[str] = None
    status: BusinessStatus = "pending"
    source: Literal["admin", "frontend"] = "frontend"
    featured: bool = False
    featuredAt: Optional[datetime] = None
    reviewedBy: Optional[str] = None
    reviewedAt: Optional[datetime] = None
    rejectionReason: Optional[str] = None


class Subcategory(BaseModel):
    slug: str
    name: str
    count: int = Field(0, ge=0)


class Category(BaseModel):
    slug: str
    name: str
    imageUrl: Optional[str] = None
    imagePublicId: Optional[str] = None
    count: int = Field(0, ge=0)
    subcategories: List[Subcategory] = Field(default_factory=list)


class User(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., description="bcrypt hash")
    role: Role = "user"
    lastLogin: Optional[datetime] = None
    createdBy: Optional[str] = None


# -----------------------------
# Request bodies
# -----------------------------

class LoginRequest(BaseModel):
    email: str
    password: str


class BulkStatusRequest(BaseModel):
    businessIds: List[str] = Field(default_factory=list)
    status: str
    rejectionReason: Optional[str] = None


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


class ReviewUpdate(BaseModel):
    name: Optional[str] = None
    comment: Optional[str] = None
    rating: Optional[float] = None
    status: Optional[str] = None


class CategoryCreate(BaseModel):
    category: str = ""
    subCategory: str = ""
    imageDataUrl: str = ""


class CategoryAction(BaseModel):
    action: str = ""
    slug: str = ""
    newName: str = ""
    subName: str = ""
    subSlug: str = ""
    imageDataUrl: str = ""
