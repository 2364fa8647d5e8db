"""
Typed wrappers around the AssetFlow HTTP API.

``AssetFlowClient`` speaks JSON (multipart for bill uploads) and returns the
same pydantic models the server responds with. Any ``httpx.Client`` can be
passed in, which is how the tests drive it through FastAPI's ``TestClient``.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import httpx

from models import (
    AdminStats,
    Announcement,
    Asset,
    AssetPage,
    AuditLogPage,
    CombinedReport,
    Department,
    ItemReport,
    Notification,
    PendingUpdate,
    PublicStats,
    User,
    VendorReport,
    YearReport,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"

BillUpload = tuple[str, bytes]


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str, errors: Optional[list[dict]] = None):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.errors = errors or []


def _clean_params(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None and v != ""}


def _form_values(fields: dict[str, Any]) -> dict[str, str]:
    data: dict[str, str] = {}
    for k, v in fields.items():
        if v is None:
            continue
        if k == "items":
            data[k] = json.dumps(v)
        elif hasattr(v, "isoformat"):
            data[k] = v.isoformat()
        else:
            data[k] = str(v)
    return data


def _bill_files(bill: Optional[BillUpload]) -> Optional[dict[str, tuple[str, bytes, str]]]:
    if bill is None:
        return None
    filename, content = bill
    return {"bill_file": (filename, content, "application/pdf")}


class AssetFlowClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        user_id: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.user_id = user_id
        self._owns_http = http is None
        self.http = http or httpx.Client(
            base_url=base_url or os.getenv("ASSETFLOW_API_URL", DEFAULT_BASE_URL),
            timeout=timeout,
        )

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "AssetFlowClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def as_user(self, user_id: Optional[str]) -> "AssetFlowClient":
        """Same connection, different caller identity."""
        return AssetFlowClient(user_id=user_id, http=self.http)

    # ---------- transport ----------
    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        response = self.http.request(method, path, headers=headers, **kwargs)
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"detail": response.text}
            logger.debug("api error method=%s path=%s status=%s", method, path, response.status_code)
            raise ApiError(response.status_code, str(payload.get("detail", "")), payload.get("errors"))
        return response

    def _json(self, method: str, path: str, **kwargs) -> Any:
        response = self._request(method, path, **kwargs)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ---------- public ----------
    def health(self) -> dict[str, Any]:
        return self._json("GET", "/health")

    def public_stats(self) -> PublicStats:
        return PublicStats.model_validate(self._json("GET", "/api/public/stats"))

    # ---------- departments ----------
    def list_departments(self) -> list[Department]:
        return [Department.model_validate(d) for d in self._json("GET", "/api/departments")]

    def create_department(self, name: str, type: str) -> Department:
        return Department.model_validate(
            self._json("POST", "/api/departments", json={"name": name, "type": type})
        )

    def update_department(self, department_id: str, **fields) -> Department:
        return Department.model_validate(
            self._json("PUT", f"/api/departments/{department_id}", json=fields)
        )

    def delete_department(self, department_id: str) -> None:
        self._json("DELETE", f"/api/departments/{department_id}")

    # ---------- assets ----------
    def list_assets(
        self,
        *,
        department_id: Optional[str] = None,
        type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> AssetPage:
        params = _clean_params({
            "department_id": department_id,
            "type": type,
            "start_date": start_date,
            "end_date": end_date,
            "page": page,
            "limit": limit,
        })
        return AssetPage.model_validate(self._json("GET", "/api/assets", params=params))

    def get_asset(self, asset_id: str) -> Asset:
        return Asset.model_validate(self._json("GET", f"/api/assets/{asset_id}"))

    def create_asset(self, fields: dict[str, Any], bill: BillUpload) -> Asset:
        return Asset.model_validate(
            self._json("POST", "/api/assets", data=_form_values(fields), files=_bill_files(bill))
        )

    def update_asset(
        self,
        asset_id: str,
        fields: dict[str, Any],
        *,
        reason: str,
        officer_name: str,
        revision: Optional[int] = None,
        bill: Optional[BillUpload] = None,
    ) -> Asset:
        data = _form_values({**fields, "reason": reason, "officer_name": officer_name, "revision": revision})
        return Asset.model_validate(
            self._json("PUT", f"/api/assets/{asset_id}", data=data, files=_bill_files(bill))
        )

    def delete_asset(self, asset_id: str, *, reason: str, officer_name: str) -> None:
        self._json(
            "DELETE",
            f"/api/assets/{asset_id}",
            json={"reason": reason, "officer_name": officer_name},
        )

    def update_item(
        self,
        asset_id: str,
        item_index: int,
        updated_item: dict[str, Any],
        *,
        reason: str,
        officer_name: str,
    ) -> Asset:
        body = {
            "item_index": item_index,
            "updated_item": updated_item,
            "reason": reason,
            "officer_name": officer_name,
        }
        return Asset.model_validate(self._json("PUT", f"/api/assets/{asset_id}/items", json=body))

    def delete_item(self, asset_id: str, item_index: int, *, reason: str, officer_name: str) -> Asset:
        body = {"item_index": item_index, "reason": reason, "officer_name": officer_name}
        return Asset.model_validate(self._json("DELETE", f"/api/assets/{asset_id}/items", json=body))

    def download_bill(self, asset_id: str) -> bytes:
        return self._request("GET", f"/api/assets/{asset_id}/bill").content

    # ---------- approvals ----------
    def request_update(self, asset_id: str, temp_values: dict[str, Any]) -> Asset:
        body = {"requested_fields": list(temp_values), "temp_values": temp_values}
        return Asset.model_validate(
            self._json("POST", f"/api/assets/{asset_id}/request-update", json=body)
        )

    def request_bill_update(self, asset_id: str, bill: BillUpload) -> Asset:
        return Asset.model_validate(
            self._json("POST", f"/api/assets/{asset_id}/request-bill-update", files=_bill_files(bill))
        )

    def pending_updates(self) -> list[PendingUpdate]:
        return [PendingUpdate.model_validate(p) for p in self._json("GET", "/api/assets/pending-updates")]

    def approve_update(self, asset_id: str, admin_remarks: Optional[str] = None) -> Asset:
        return Asset.model_validate(
            self._json("POST", f"/api/assets/{asset_id}/approve-update", json={"admin_remarks": admin_remarks})
        )

    def reject_update(self, asset_id: str, admin_remarks: Optional[str] = None) -> Asset:
        return Asset.model_validate(
            self._json("POST", f"/api/assets/{asset_id}/reject-update", json={"admin_remarks": admin_remarks})
        )

    def review_update(self, asset_id: str, *, approve: bool, remarks: Optional[str] = None) -> Asset:
        return Asset.model_validate(
            self._json(
                "POST",
                f"/api/assets/{asset_id}/review-update",
                json={"approve": approve, "remarks": remarks},
            )
        )

    # ---------- notifications / announcements ----------
    def notifications(self) -> list[Notification]:
        return [Notification.model_validate(n) for n in self._json("GET", "/api/notifications")]

    def mark_notification_read(self, notification_id: str) -> None:
        self._json("PUT", f"/api/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> None:
        self._json("PUT", "/api/notifications/mark-all-read")

    def announcements(self) -> list[Announcement]:
        return [Announcement.model_validate(a) for a in self._json("GET", "/api/announcements")]

    def create_announcement(self, **fields) -> Announcement:
        return Announcement.model_validate(self._json("POST", "/api/announcements", json=fields))

    # ---------- reports ----------
    def combined_report(self, **filters) -> CombinedReport:
        return CombinedReport.model_validate(
            self._json("GET", "/api/reports", params=_clean_params(filters))
        )

    def department_report(self, department_id: Optional[str] = None) -> CombinedReport:
        params = _clean_params({"department_id": department_id})
        return CombinedReport.model_validate(self._json("GET", "/api/reports/department", params=params))

    def vendor_report(
        self, vendor_name: Optional[str] = None, department_id: Optional[str] = None
    ) -> VendorReport:
        params = _clean_params({"vendor_name": vendor_name, "department_id": department_id})
        return VendorReport.model_validate(self._json("GET", "/api/reports/vendor", params=params))

    def item_report(self, item_name: Optional[str] = None, department_id: Optional[str] = None) -> ItemReport:
        params = _clean_params({"item_name": item_name, "department_id": department_id})
        return ItemReport.model_validate(self._json("GET", "/api/reports/item", params=params))

    def year_report(self, department_id: Optional[str] = None) -> YearReport:
        params = _clean_params({"department_id": department_id})
        return YearReport.model_validate(self._json("GET", "/api/reports/year", params=params))

    def export_csv(self, **filters) -> str:
        return self._request("GET", "/api/reports/export/csv", params=_clean_params(filters)).text

    # ---------- admin ----------
    def list_users(self) -> list[User]:
        return [User.model_validate(u) for u in self._json("GET", "/api/admin/users")]

    def create_user(self, **fields) -> User:
        return User.model_validate(self._json("POST", "/api/admin/users", json=fields))

    def audit_logs(self, **filters) -> AuditLogPage:
        return AuditLogPage.model_validate(
            self._json("GET", "/api/admin/audit-logs", params=_clean_params(filters))
        )

    def admin_stats(self) -> AdminStats:
        return AdminStats.model_validate(self._json("GET", "/api/admin/stats"))
