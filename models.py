from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from datetime import datetime
import uuid

REQUEST_ACTIVE = "active"
REQUEST_COMPLETED = "completed"
REQUEST_CANCELLED = "cancelled"
REQUEST_EXPIRED = "expired"
REQUEST_STATUSES = (REQUEST_ACTIVE, REQUEST_COMPLETED, REQUEST_CANCELLED, REQUEST_EXPIRED)

VOTE_ACCEPTED = "accepted"
VOTE_REJECTED = "rejected"
VOTE_DECISIONS = (VOTE_ACCEPTED, VOTE_REJECTED)

CAR_TYPES = ("sedan", "suv", "hatchback", "any")


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    phone: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class RideRequest(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: int = Field(index=True)
    origin: str = Field(max_length=100)
    destination: str = Field(max_length=100)
    travel_date: datetime = Field(index=True)
    travel_time: str = "00:00"  # HH:MM
    car_type: str = "any"
    max_persons: int = 1
    current_occupancy: int = 0
    status: str = Field(default=REQUEST_ACTIVE, index=True)  # active, completed, cancelled, expired
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class Vote(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("voter_id", "request_id", name="uq_vote_voter_request"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    voter_id: int = Field(index=True)
    request_id: uuid.UUID = Field(foreign_key="riderequest.id", index=True)
    decision: str  # accepted, rejected
    note: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
