"""
Pydantic schemas for profiles.

Field rules follow the profile-completion form: username 3-30 characters of
letters, digits and underscores; city and bio required; at least one interest.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from app.core.config import settings

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

INTEREST_OPTIONS = [
    "Sports",
    "Music",
    "Art",
    "Food",
    "Travel",
    "Technology",
    "Gaming",
    "Fashion",
    "Photography",
    "Reading",
    "Fitness",
    "Cooking",
    "Nature",
    "Movies",
    "Dancing",
]


def validate_username(username: str) -> str:
    if not username or not username.strip():
        raise ValueError("Username is required")
    if len(username) < settings.username_min_length:
        raise ValueError(
            f"Username must be at least {settings.username_min_length} characters long"
        )
    if len(username) > settings.username_max_length:
        raise ValueError(
            f"Username must be less than {settings.username_max_length} characters"
        )
    if not USERNAME_PATTERN.match(username):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return username


def validate_city(city: str) -> str:
    if not city or not city.strip():
        raise ValueError("City is required")
    return city.strip()


def validate_bio(bio: str) -> str:
    if not bio or not bio.strip():
        raise ValueError("Bio is required")
    if len(bio) > settings.bio_max_length:
        raise ValueError(f"Bio must be less than {settings.bio_max_length} characters")
    return bio


def validate_interests(interests: List[str]) -> List[str]:
    # Treated as a set; keep first-seen order
    cleaned = list(dict.fromkeys(i.strip() for i in interests if i and i.strip()))
    if not cleaned:
        raise ValueError("Please select at least one interest")
    return cleaned


def validate_instagram_url(url: str) -> str:
    if not url or not url.strip():
        raise ValueError("Instagram URL is required")
    if "instagram.com/" not in url:
        raise ValueError("Please enter a valid Instagram URL")
    return url.strip()


class ProfileCreate(BaseModel):
    """Schema for completing a profile"""
    username: str
    city: str
    bio: str
    interests: List[str]
    instagram_url: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("city")
    @classmethod
    def _city(cls, v: str) -> str:
        return validate_city(v)

    @field_validator("bio")
    @classmethod
    def _bio(cls, v: str) -> str:
        return validate_bio(v)

    @field_validator("interests")
    @classmethod
    def _interests(cls, v: List[str]) -> List[str]:
        return validate_interests(v)

    @field_validator("instagram_url")
    @classmethod
    def _instagram(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_instagram_url(v)


class ProfileUpdate(BaseModel):
    """Schema for updating a profile. Only provided fields are changed."""
    username: Optional[str] = None
    city: Optional[str] = None
    bio: Optional[str] = None
    interests: Optional[List[str]] = None
    instagram_url: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("username")
    @classmethod
    def _username(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_username(v)

    @field_validator("city")
    @classmethod
    def _city(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_city(v)

    @field_validator("bio")
    @classmethod
    def _bio(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_bio(v)

    @field_validator("interests")
    @classmethod
    def _interests(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else validate_interests(v)

    @field_validator("instagram_url")
    @classmethod
    def _instagram(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_instagram_url(v)


class ProfileResponse(BaseModel):
    id: str
    username: str
    city: str
    bio: str
    interests: List[str]
    instagram_url: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UsernameAvailability(BaseModel):
    username: str
    available: bool
