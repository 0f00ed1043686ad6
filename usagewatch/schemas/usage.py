from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ActivitySegment(BaseModel):
    # One reporting interval: app id -> seconds of activity
    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime
    per_app_duration: Dict[str, float] = Field(default_factory=dict)
    source_bucket_hour: Optional[int] = Field(None, ge=0, le=23)

    @field_validator("per_app_duration")
    @classmethod
    def durations_non_negative(cls, value):
        for app_id, duration in value.items():
            if duration < 0:
                raise ValueError(f"negative duration for {app_id}")
        return value

    @model_validator(mode="after")
    def interval_ordered(self):
        if self.end_time < self.start_time:
            raise ValueError("end_time is before start_time")
        return self

    @property
    def bucket_hour(self) -> int:
        # Local calendar hour of the segment start
        if self.source_bucket_hour is not None:
            return self.source_bucket_hour
        start = self.start_time
        if start.tzinfo is not None:
            start = start.astimezone()
        return start.hour


class TimeRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: float = Field(alias="startTime")   # epoch seconds
    end: float = Field(alias="endTime")
    duration: float
    session_id: str = Field(alias="sessionId")


class AppUsageRecord(BaseModel):
    app_id: str
    cumulative_duration: float = 0.0
    hourly_breakdown: Dict[int, float] = Field(default_factory=dict)  # hour(0~23) -> seconds
    time_ranges: List[TimeRange] = Field(default_factory=list)


class ActivityReportPayload(BaseModel):
    # One (context, report) pair as delivered to the reporting extension
    context: str
    segments: List[ActivitySegment] = Field(default_factory=list)


class AppUsageResponse(BaseModel):
    app_id: str
    display_name: str
    cumulative_duration: float
    hourly_breakdown: Dict[int, float]
    time_ranges: List[TimeRange]


class UsageOverviewResponse(BaseModel):
    apps: List[AppUsageResponse]
    last_activity_update: Optional[float] = None
