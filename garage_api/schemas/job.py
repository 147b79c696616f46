"""
Pydantic schemas for Job.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Optional, List, Dict
from garage_api.schemas.common import REQUEST_CONFIG
from garage_api.models.booking import Priority
from garage_api.models.job import JobStatus
from garage_api.schemas.booking import BookingSummary
from garage_api.schemas.goods_request import GoodsRequest
from garage_api.schemas.user import UserSummary


class MaterialRequirement(BaseModel):
    """One line of required material, addressed by inventory ``item_id``."""
    item_id: str
    requested_quantity: float = Field(1, gt=0)

    model_config = REQUEST_CONFIG


class JobRequirements(BaseModel):
    skills: List[str] = []
    tools: List[str] = []
    materials: List[MaterialRequirement] = []

    model_config = REQUEST_CONFIG


class JobBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: str = "general"
    priority: Priority = Priority.MEDIUM
    estimated_hours: float = Field(0, ge=0)
    estimated_cost: float = Field(0, ge=0)
    notes: Optional[str] = None


class JobCreate(JobBase):
    """Either ``assigned_technician`` or ``assigned_labourers`` may name technicians."""
    requirements: JobRequirements = JobRequirements()
    assigned_technician: Optional[int] = None
    assigned_labourers: List[int] = []

    model_config = REQUEST_CONFIG


class JobUpdate(BaseModel):
    """Editable job details. Identity, booking, work log and inspections are not editable here."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[Priority] = None
    requirements: Optional[JobRequirements] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    estimated_cost: Optional[float] = Field(None, ge=0)
    actual_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None

    model_config = REQUEST_CONFIG


class JobStatusUpdate(BaseModel):
    status: JobStatus
    notes: Optional[str] = None

    model_config = REQUEST_CONFIG


class LabourerAssignment(BaseModel):
    labourer_ids: List[int] = Field(..., min_length=1)

    model_config = REQUEST_CONFIG


class WorkLogCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None

    model_config = REQUEST_CONFIG


class InspectionCreate(BaseModel):
    type: str
    condition: Optional[str] = None
    issues: List[str] = []
    photos: List[str] = []
    quality_rating: Optional[int] = Field(None, ge=1, le=5)
    approved: bool = False

    model_config = REQUEST_CONFIG


class MaterialLine(BaseModel):
    item_id: str
    requested_quantity: float


class RequirementsRecord(BaseModel):
    """Stored requirements as returned on a job."""
    skills: List[str] = []
    tools: List[str] = []
    materials: List[MaterialLine] = []


class AssignedLabourer(BaseModel):
    labourer: int
    assigned_at: datetime
    hours_worked: float = 0


class WorkLogEntry(BaseModel):
    labourer: int
    start_time: datetime
    end_time: datetime
    hours_worked: float
    description: Optional[str] = None
    logged_at: Optional[datetime] = None


class InspectionRecord(BaseModel):
    condition: Optional[str] = None
    issues: List[str] = []
    photos: List[str] = []
    inspector: int
    inspected_at: datetime
    quality_rating: Optional[int] = None
    approved: Optional[bool] = None


class InspectionReport(BaseModel):
    pre_work: Optional[InspectionRecord] = None
    post_work: Optional[InspectionRecord] = None


class Job(JobBase):
    """Schema for job responses, with referenced entities resolved."""
    id: int
    job_id: str
    booking_id: Optional[int] = None
    status: JobStatus
    requirements: RequirementsRecord
    assigned_labourers: List[AssignedLabourer] = []
    work_log: List[WorkLogEntry] = []
    inspection_report: InspectionReport = InspectionReport()
    actual_hours: float = 0
    actual_cost: float = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    inspected_by: Optional[int] = None
    created_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    booking: Optional[BookingSummary] = None
    creator: Optional[UserSummary] = None
    labourers: List[UserSummary] = []

    model_config = ConfigDict(from_attributes=True)


class JobResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    job: Job


class JobCreateResponse(JobResponse):
    goods_requests: List[GoodsRequest] = []
    goods_request_errors: List[str] = []


class JobListResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    count: int
    total: int
    total_pages: int
    current_page: int
    jobs: List[Job]


class CreatedJobStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_category: Dict[str, int]
    total_assigned_labourers: int


class CreatedJobListResponse(JobListResponse):
    stats: CreatedJobStats


class JobDeleteResponse(BaseModel):
    success: bool = True
    message: str
    job: Dict[str, Any]


class JobStatsResponse(BaseModel):
    success: bool = True
    stats: Dict[str, Any]
