from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, List, Literal
from datetime import date
from decimal import Decimal


RoleCode = Literal["superadmin", "hotel_manager", "supervisor", "staff"]
LocationTypeCode = Literal["kamar", "fasilitas_umum", "office", "gudang"]
AssetCategoryCode = Literal[
    "peralatan_kamar",
    "peralatan_dapur",
    "mesin_laundry_housekeeping",
    "kendaraan_operasional",
    "peralatan_kantor_it",
    "peralatan_rekreasi_leisure",
    "infrastruktur",
]
AssetConditionCode = Literal["baik", "cukup", "perlu_perbaikan", "rusak"]
AssetStatusCode = Literal["aktif", "dalam_perbaikan", "tidak_aktif", "dihapuskan"]
MaintenanceTypeCode = Literal["renovasi_lokasi", "perbaikan_aset"]
MaintenanceStatusCode = Literal["pending", "in_progress", "completed", "cancelled"]
ApprovalStatusCode = Literal["pending_approval", "approved", "rejected"]


# ============ Auth ============

class LoginRequest(BaseModel):
    email: EmailStr
    login_code: str


class UserInfo(BaseModel):
    """User info returned with login token"""
    id: int
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str
    user: Optional[UserInfo] = None


# ============ Admin ============

class CreateUserRequest(BaseModel):
    email: EmailStr
    login_code: str
    full_name: str
    role: RoleCode
    property_ids: Optional[List[int]] = []

    @field_validator('login_code', 'full_name')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class DeleteUserRequest(BaseModel):
    user_id: int


# ============ Properties / catalog ============

class PropertyCreate(BaseModel):
    name: str
    address: Optional[str] = None
    description: Optional[str] = None


class LocationCreate(BaseModel):
    name: str
    type: LocationTypeCode


class AssetCreate(BaseModel):
    name: str
    category: AssetCategoryCode
    location_id: Optional[int] = None
    is_movable: bool = False
    brand: Optional[str] = None
    series: Optional[str] = None
    purchase_price: Optional[Decimal] = None
    condition: AssetConditionCode = "baik"
    status: AssetStatusCode = "aktif"
    last_maintenance_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None


# ============ Maintenance ============

class MaintenanceCreate(BaseModel):
    title: str
    type: MaintenanceTypeCode
    asset_id: Optional[int] = None
    location_id: Optional[int] = None
    description: Optional[str] = None
    total_cost: Optional[Decimal] = Decimal("0")
    status: MaintenanceStatusCode = "pending"
    start_date: date
    end_date: Optional[date] = None
    evidence_urls: Optional[List[str]] = []


class MaintenanceUpdate(BaseModel):
    title: Optional[str] = None
    type: Optional[MaintenanceTypeCode] = None
    asset_id: Optional[int] = None
    location_id: Optional[int] = None
    description: Optional[str] = None
    total_cost: Optional[Decimal] = None
    status: Optional[MaintenanceStatusCode] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    evidence_urls: Optional[List[str]] = None


class RejectRequest(BaseModel):
    rejection_reason: Optional[str] = None


# ============ Reports ============

class AssetReportRequest(BaseModel):
    property_id: Optional[int] = None
    scope: Literal["current", "all"] = "current"
    location_id: Optional[int] = None
    category: Optional[AssetCategoryCode] = None
    condition: Optional[AssetConditionCode] = None
    status: Optional[AssetStatusCode] = None
    search: Optional[str] = None
    selected_ids: List[int] = []
    format: Literal["xlsx", "pdf"] = "xlsx"


class MaintenanceReportRequest(BaseModel):
    property_id: Optional[int] = None
    scope: Literal["current", "all"] = "current"
    location_id: Optional[int] = None
    asset_id: Optional[int] = None
    type: Optional[MaintenanceTypeCode] = None
    status: Optional[MaintenanceStatusCode] = None
    approval_status: Optional[ApprovalStatusCode] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    selected_ids: List[int] = []
    format: Literal["xlsx", "pdf"] = "xlsx"
