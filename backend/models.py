from pydantic import BaseModel, Field, EmailStr
from typing import List, Optional
from datetime import datetime


# ── User Models ──
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=4)
    confirm_password: str

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class ProfileUpdate(BaseModel):
    email: EmailStr
    fname: str = Field(..., min_length=1)
    lname: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    gender: str = ""
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    line1: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)

class PasswordUpdate(BaseModel):
    password: str = Field(..., min_length=4)
    confirm_password: str

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=4)
    confirm: str


# ── Billing Models ──
class PaymentRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    token_id: str = Field(..., min_length=1)


# ── Contact ──
class ContactMessage(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: str = Field(..., min_length=1)


# ── Exercise / Routine Models ──
class ExerciseVideo(BaseModel):
    mp4: Optional[str] = None
    webm: Optional[str] = None
    ogg: Optional[str] = None

class ExerciseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    video: ExerciseVideo = Field(default_factory=ExerciseVideo)

class ExerciseUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    video: Optional[ExerciseVideo] = None

class RoutineCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    day: datetime
    exercises: List[str] = []
