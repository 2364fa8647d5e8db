from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Optional, Literal
from datetime import date, datetime

AssetType = Literal["capital", "revenue", "consumable"]
UpdateRequestStatus = Literal["none", "pending", "approved", "rejected"]
DepartmentType = Literal["Major", "Academic", "Service"]
Role = Literal["admin", "department-officer", "chief-administrative-officer", "user"]
AnnouncementType = Literal["report_reminder", "budget_release", "general", "urgent"]
NotificationType = Literal["update_approved", "update_rejected", "update_requested"]
AuditAction = Literal["CREATE", "UPDATE", "DELETE"]
AuditEntity = Literal["ASSET", "USER", "DEPARTMENT", "ASSET_ITEM"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class Message(BaseModel):
    message: str


# ---------- Department ----------
class DepartmentIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    type: DepartmentType

class DepartmentUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[DepartmentType] = None

class Department(DepartmentIn):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    updated_at: datetime

class DepartmentRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str


# ---------- User ----------
class UserIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    role: Role = "user"
    department_id: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    role: Optional[Role] = None
    department_id: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: Role
    department_id: Optional[str] = None
    department: Optional[DepartmentRef] = None
    created_at: datetime
    updated_at: datetime


# ---------- Asset ----------
class ItemIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    particulars: str = Field(min_length=1)
    serial_number: str = ""
    serial_numbers: list[str] = Field(default_factory=list)
    quantity: float = Field(default=0, ge=0)
    rate: float = Field(default=0, ge=0)
    cgst: float = Field(default=0, ge=0)
    sgst: float = Field(default=0, ge=0)

class Item(ItemIn):
    model_config = ConfigDict(from_attributes=True)

    amount: float = 0
    grand_total: float = 0

class AssetFields(BaseModel):
    """Editable asset fields. Every field is optional so the model also
    describes partial updates and staged edits."""

    model_config = ConfigDict(str_strip_whitespace=True)

    department_id: Optional[str] = None
    category: Optional[str] = None
    type: Optional[AssetType] = None
    item_name: Optional[str] = None
    quantity: Optional[float] = Field(default=None, ge=0)
    price_per_item: Optional[float] = Field(default=None, ge=0)
    items: Optional[list[ItemIn]] = None
    vendor: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_address: Optional[str] = Field(default=None, min_length=1)
    contact_number: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    bill_no: Optional[str] = Field(default=None, min_length=1)
    bill_date: Optional[date] = None
    college_isr_no: Optional[str] = None
    it_isr_no: Optional[str] = None
    igst: Optional[float] = Field(default=None, ge=0)
    cgst: Optional[float] = Field(default=None, ge=0)
    sgst: Optional[float] = Field(default=None, ge=0)
    grand_total: Optional[float] = Field(default=None, ge=0)
    remark: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

class AssetIn(AssetFields):
    department_id: str = Field(min_length=1)
    type: AssetType = "capital"
    items: list[ItemIn] = Field(default_factory=list)
    vendor_address: str = Field(min_length=1)
    contact_number: str = Field(min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    bill_no: str = Field(min_length=1)
    bill_date: date

    @model_validator(mode="after")
    def check_shape(self) -> "AssetIn":
        if not (self.vendor or self.vendor_name):
            raise ValueError("Vendor name is required")
        if not self.items:
            missing = [
                name
                for name in ("item_name", "quantity", "price_per_item")
                if getattr(self, name) in (None, "")
            ]
            if missing:
                raise ValueError(f"Either items or {', '.join(missing)} must be provided")
        if not self.category:
            self.category = self.type.lower()
        return self

class AssetUpdate(AssetFields):
    revision: Optional[int] = None

class Asset(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    department_id: str
    department: Optional[DepartmentRef] = None
    category: str
    type: AssetType
    item_name: Optional[str] = None
    quantity: Optional[float] = None
    price_per_item: Optional[float] = None
    total_amount: float
    items: list[Item] = Field(default_factory=list)
    vendor: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_address: str
    contact_number: str
    email: str
    bill_no: str
    bill_date: date
    bill_file_id: str
    college_isr_no: Optional[str] = None
    it_isr_no: Optional[str] = None
    igst: Optional[float] = None
    cgst: Optional[float] = None
    sgst: Optional[float] = None
    grand_total: Optional[float] = None
    remark: Optional[str] = None
    update_request_status: UpdateRequestStatus = "none"
    requested_fields: list[str] = Field(default_factory=list)
    temp_values: dict[str, Any] = Field(default_factory=dict)
    temp_bill_file_id: Optional[str] = None
    admin_remarks: str = ""
    requested_by_id: Optional[str] = None
    requested_at: Optional[datetime] = None
    reviewed_by_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    revision: int
    created_at: datetime
    updated_at: datetime

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_assets: int
    has_next: bool
    has_prev: bool

class AssetPage(BaseModel):
    assets: list[Asset]
    pagination: Pagination

class ChangeReason(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(min_length=1)
    officer_name: str = Field(min_length=1)

class ItemUpdateIn(ChangeReason):
    item_index: int
    updated_item: ItemIn

class ItemDeleteIn(ChangeReason):
    item_index: int


# ---------- Approval workflow ----------
class UpdateRequestIn(BaseModel):
    requested_fields: list[str] = Field(min_length=1)
    temp_values: dict[str, Any] = Field(default_factory=dict)

class StagedItemEdit(BaseModel):
    item_index: int = Field(ge=0)
    updated_item: ItemIn

class StagedItemDelete(BaseModel):
    item_index: int = Field(ge=0)

class ReviewIn(BaseModel):
    admin_remarks: Optional[str] = None

class DecisionIn(BaseModel):
    approve: bool
    remarks: Optional[str] = None

class PendingUpdate(Asset):
    current_values: dict[str, str] = Field(default_factory=dict)
    new_values: dict[str, str] = Field(default_factory=dict)


# ---------- Announcement / Notification ----------
class AnnouncementIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    type: AnnouncementType = "general"
    is_global: bool = False
    target_departments: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None

class Announcement(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    message: str
    type: AnnouncementType
    is_global: bool
    target_departments: list[DepartmentRef] = Field(default_factory=list)
    created_by_id: str
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime

class Notification(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    asset_id: Optional[str] = None
    bill_no: Optional[str] = None
    is_read: bool
    created_by_id: Optional[str] = None
    created_at: datetime


# ---------- Audit / admin ----------
class AuditLog(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    action: AuditAction
    entity_type: AuditEntity
    entity_id: str
    user_id: str
    reason: str
    officer_name: Optional[str] = None
    old_data: Optional[dict[str, Any]] = None
    new_data: Optional[dict[str, Any]] = None
    timestamp: datetime

class AuditLogPage(BaseModel):
    logs: list[AuditLog]
    current_page: int
    total_pages: int
    total_logs: int

class TypeCount(BaseModel):
    type: str
    count: int

class AdminStats(BaseModel):
    assets: int
    users: int
    departments: int
    audit_logs: int
    pending_updates: int
    assets_by_type: list[TypeCount]
    recent_activity: list[AuditLog]

class PublicStats(BaseModel):
    total_assets: int
    total_departments: int
    this_month_assets: int
    total_value: str


# ---------- Reports ----------
class ReportSummary(BaseModel):
    total_capital: float
    total_revenue: float
    total_consumable: float
    grand_total: float
    item_count: int

class CombinedReport(BaseModel):
    summary: ReportSummary
    assets: list[Asset]

class VendorRow(BaseModel):
    vendor_name: Optional[str]
    total_assets: int
    total_amount: float
    vendor_address: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None

class VendorReport(BaseModel):
    report: list[VendorRow]
    grand_total: float
    total_vendors: int

class ItemReport(BaseModel):
    report: list[Asset]
    grand_total: float
    total_items: int

class YearRow(BaseModel):
    year: int
    total_assets: int
    total_amount: float

class YearReport(BaseModel):
    report: list[YearRow]
    grand_total: float
    total_years: int
