"""Segmentation taxonomy and result model."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class Segment(str, Enum):
    """The seven mutually exclusive customer segments."""

    VIP_CUSTOMER = "VIP_CUSTOMER"
    REGULAR_CUSTOMER = "REGULAR_CUSTOMER"
    POTENTIAL_CUSTOMER = "POTENTIAL_CUSTOMER"
    SUPPORT_SEEKER = "SUPPORT_SEEKER"
    PRICE_SENSITIVE = "PRICE_SENSITIVE"
    INACTIVE_CUSTOMER = "INACTIVE_CUSTOMER"
    NEW_CUSTOMER = "NEW_CUSTOMER"


SEGMENT_DESCRIPTIONS = {
    Segment.VIP_CUSTOMER: "High-value customer who interacts often and is loyal",
    Segment.REGULAR_CUSTOMER: "Ordinary customer with a normal interaction pattern",
    Segment.POTENTIAL_CUSTOMER: "Prospect showing interest but not yet committed",
    Segment.SUPPORT_SEEKER: "Mostly looking for help or support",
    Segment.PRICE_SENSITIVE: "Pays close attention to prices and offers",
    Segment.INACTIVE_CUSTOMER: "Customer who rarely interacts anymore",
    Segment.NEW_CUSTOMER: "New customer who has only just started interacting",
}


class SegmentationResult(BaseModel):
    """Structured segmentation output produced by the classifier or the fallback."""

    segment: Segment
    confidence: float = Field(ge=0, le=1)
    reasoning: str
    characteristics: List[str] = Field(default_factory=list)
