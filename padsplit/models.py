from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ZipStatus(str, Enum):
    ACTIVE = "active"          # Page parsed, unit counts or metrics found (or genuinely nothing)
    NO_DATA = "no_data"        # Page explicitly says the zip has no active homes
    NO_ACTIVE = "no_active"    # Page explicitly reports 0 active units
    ERROR = "error"            # Extraction raised


class JobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class Credentials(BaseModel):
    email: str
    password: str = Field(repr=False)


class MetroArea(CamelModel):
    id: Optional[Union[int, str]] = None
    name: str = "Unknown"
    slug: Optional[str] = None
    market_type: str = "active"
    active_properties: int = 0
    supported_zipcode_count: int = 0


class MetroStats(CamelModel):
    active_rooms: Optional[int] = None
    upcoming_rooms: Optional[int] = None
    searches: Optional[int] = None
    average_occupancy: Optional[int] = None  # percentage 0-100
    shared_bathroom_price: Optional[int] = None
    private_bathroom_price: Optional[int] = None
    days_to_first_booking: Optional[int] = None
    days_to_80_percent: Optional[int] = Field(default=None, alias="daysTo80Percent")


class MetroAreaDetail(CamelModel):
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    market_type: Optional[str] = None
    stats: MetroStats = Field(default_factory=MetroStats)
    zip_codes: List[Any] = Field(default_factory=list)


class ZipRecord(CamelModel):
    """Metrics extracted for one zip code."""

    zip_code: str
    city: Optional[str] = None
    status: ZipStatus = ZipStatus.ACTIVE
    active_units: Optional[int] = None
    upcoming_units: Optional[int] = None
    shared_bathroom_price: Optional[int] = None
    private_bathroom_price: Optional[int] = None
    average_occupancy: Optional[int] = None
    days_to_first_booking: Optional[int] = None
    days_to_80_booking: Optional[int] = Field(default=None, alias="daysTo80Booking")
    error: Optional[str] = None


class ScrapeJob(CamelModel):
    id: str
    status: JobStatus = JobStatus.RUNNING
    city_name: str
    total_zip_codes: int
    completed_zip_codes: int = 0
    current_zip_code: Optional[str] = None
    results: List[ZipRecord] = Field(default_factory=list)
    start_time: datetime
    end_time: Optional[datetime] = None
    error: Optional[str] = None


class JobProgress(CamelModel):
    status: JobStatus
    total_zip_codes: int
    completed_zip_codes: int
    current_zip_code: Optional[str] = None
    progress_percent: int
    error: Optional[str] = None


class JobResults(CamelModel):
    status: JobStatus
    city_name: str
    results: List[ZipRecord]
    duration_ms: Optional[int] = None
