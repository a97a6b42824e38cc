# app/schemas/calendar/calendar.py
from pydantic import BaseModel
from typing import List


class SubscriptionLink(BaseModel):
    id: int
    name: str
    url: str


class SubscriptionUrls(BaseModel):
    all: str
    date_range_template: str
    doctors: List[SubscriptionLink]
    specialties: List[SubscriptionLink]
