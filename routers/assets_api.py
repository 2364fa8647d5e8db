import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

import crud
from bill_files import delete_bill, get_bill, store_bill
from dependencies import (
    check_asset_access,
    check_department_access,
    department_scope,
    get_current_user,
    get_db,
    require_editor,
)
from errors import ValidationFailed
from filter_helpers import blank_to_none, normalize_limit, normalize_page, normalize_type, parse_date
from models import (
    Asset,
    AssetIn,
    AssetPage,
    AssetUpdate,
    ChangeReason,
    ItemDeleteIn,
    ItemUpdateIn,
)
from orm import AssetORM, UserORM

router = APIRouter(prefix="/api/assets", tags=["assets"])

# free-text fields an update may set to ""
CLEARABLE_FIELDS = {"remark", "college_isr_no", "it_isr_no"}


def parse_items(raw: Optional[str]) -> Optional[list[Any]]:
    if raw is None or raw.strip() == "":
        return None
    try:
        items = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationFailed("Items must be a JSON array", field="items")
    if not isinstance(items, list):
        raise ValidationFailed("Items must be a JSON array", field="items")
    return items


def form_fields(fields: dict[str, Optional[str]], *, keep_blank: set[str] = frozenset()) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for k, v in fields.items():
        if v is None:
            continue
        if v == "" and k not in keep_blank:
            continue
        data[k] = v
    return data


def get_asset_or_404(db: Session, asset_id: str) -> AssetORM:
    a = crud.get_asset_row(db, asset_id)
    if not a:
        raise HTTPException(status_code=404, detail="Asset not found")
    return a


def read_upload(upload: UploadFile) -> tuple[str, Optional[str], bytes]:
    return upload.filename or "", upload.content_type, upload.file.read()


@router.post("", response_model=Asset, status_code=201)
def create_asset_api(
    department_id: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    item_name: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price_per_item: Optional[str] = Form(None),
    items: Optional[str] = Form(None),
    vendor: Optional[str] = Form(None),
    vendor_name: Optional[str] = Form(None),
    vendor_address: Optional[str] = Form(None),
    contact_number: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    bill_no: Optional[str] = Form(None),
    bill_date: Optional[str] = Form(None),
    college_isr_no: Optional[str] = Form(None),
    it_isr_no: Optional[str] = Form(None),
    igst: Optional[str] = Form(None),
    cgst: Optional[str] = Form(None),
    sgst: Optional[str] = Form(None),
    grand_total: Optional[str] = Form(None),
    remark: Optional[str] = Form(None),
    bill_file: UploadFile = File(...),
    user: UserORM = Depends(require_editor),
    db: Session = Depends(get_db),
):
    data = form_fields({
        "department_id": department_id,
        "category": category,
        "type": type,
        "item_name": item_name,
        "quantity": quantity,
        "price_per_item": price_per_item,
        "vendor": vendor,
        "vendor_name": vendor_name,
        "vendor_address": vendor_address,
        "contact_number": contact_number,
        "email": email,
        "bill_no": bill_no,
        "bill_date": bill_date,
        "college_isr_no": college_isr_no,
        "it_isr_no": it_isr_no,
        "igst": igst,
        "cgst": cgst,
        "sgst": sgst,
        "grand_total": grand_total,
        "remark": remark,
    })
    parsed_items = parse_items(items)
    if parsed_items is not None:
        data["items"] = parsed_items
    if user.role == "department-officer":
        data.setdefault("department_id", user.department_id)

    body = AssetIn.model_validate(data)
    check_department_access(user, body.department_id)

    filename, content_type, content = read_upload(bill_file)
    bill_file_id = store_bill(db, filename=filename, content_type=content_type, data=content, commit=False)
    return crud.create_asset(db, body, bill_file_id=bill_file_id, actor=user)


@router.get("", response_model=AssetPage)
def list_assets_api(
    department_id: Optional[str] = None,
    type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.page_assets(
        db,
        department_id=department_scope(user, blank_to_none(department_id)),
        asset_type=normalize_type(type),
        start_date=parse_date(start_date, field="start_date"),
        end_date=parse_date(end_date, field="end_date"),
        page=normalize_page(page),
        limit=normalize_limit(limit),
    )


@router.get("/{asset_id}", response_model=Asset)
def get_asset_api(
    asset_id: str,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)
    return Asset.model_validate(a)


def _bill_response(db: Session, a: AssetORM, disposition: str) -> Response:
    bill = get_bill(db, a.bill_file_id)
    if not bill:
        raise HTTPException(status_code=404, detail="Bill file not found")
    return Response(
        content=bill.data,
        media_type=bill.content_type,
        headers={"Content-Disposition": f'{disposition}; filename="{bill.filename}"'},
    )


@router.get("/{asset_id}/bill")
def download_bill_api(
    asset_id: str,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)
    return _bill_response(db, a, "attachment")


@router.get("/{asset_id}/preview")
def preview_bill_api(
    asset_id: str,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)
    return _bill_response(db, a, "inline")


@router.put("/{asset_id}", response_model=Asset)
def update_asset_api(
    asset_id: str,
    reason: str = Form(...),
    officer_name: str = Form(...),
    revision: Optional[int] = Form(None),
    department_id: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    item_name: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    price_per_item: Optional[str] = Form(None),
    items: Optional[str] = Form(None),
    vendor: Optional[str] = Form(None),
    vendor_name: Optional[str] = Form(None),
    vendor_address: Optional[str] = Form(None),
    contact_number: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    bill_no: Optional[str] = Form(None),
    bill_date: Optional[str] = Form(None),
    college_isr_no: Optional[str] = Form(None),
    it_isr_no: Optional[str] = Form(None),
    igst: Optional[str] = Form(None),
    cgst: Optional[str] = Form(None),
    sgst: Optional[str] = Form(None),
    grand_total: Optional[str] = Form(None),
    remark: Optional[str] = Form(None),
    bill_file: Optional[UploadFile] = File(None),
    user: UserORM = Depends(require_editor),
    db: Session = Depends(get_db),
):
    change = ChangeReason(reason=reason, officer_name=officer_name)
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)

    data = form_fields(
        {
            "department_id": department_id,
            "category": category,
            "type": type,
            "item_name": item_name,
            "quantity": quantity,
            "price_per_item": price_per_item,
            "vendor": vendor,
            "vendor_name": vendor_name,
            "vendor_address": vendor_address,
            "contact_number": contact_number,
            "email": email,
            "bill_no": bill_no,
            "bill_date": bill_date,
            "college_isr_no": college_isr_no,
            "it_isr_no": it_isr_no,
            "igst": igst,
            "cgst": cgst,
            "sgst": sgst,
            "grand_total": grand_total,
            "remark": remark,
        },
        keep_blank=CLEARABLE_FIELDS,
    )
    parsed_items = parse_items(items)
    if parsed_items is not None:
        if not parsed_items:
            raise ValidationFailed("At least one item is required", field="items")
        data["items"] = parsed_items
    if revision is not None:
        data["revision"] = revision

    body = AssetUpdate.model_validate(data)
    if body.department_id is not None:
        check_department_access(user, body.department_id)

    new_bill_id = None
    old_bill_id = a.bill_file_id
    if bill_file is not None and bill_file.filename:
        filename, content_type, content = read_upload(bill_file)
        new_bill_id = store_bill(db, filename=filename, content_type=content_type, data=content, commit=False)

    updated = crud.update_asset(
        db,
        asset_id,
        body,
        actor=user,
        reason=change.reason,
        officer_name=change.officer_name,
        bill_file_id=new_bill_id,
        commit=new_bill_id is None,
    )
    if new_bill_id:
        delete_bill(db, old_bill_id, commit=True)
    return updated


@router.delete("/{asset_id}", status_code=204)
def delete_asset_api(
    asset_id: str,
    body: ChangeReason,
    user: UserORM = Depends(require_editor),
    db: Session = Depends(get_db),
):
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)

    bill_ids = [a.bill_file_id, a.temp_bill_file_id]
    crud.delete_asset(db, asset_id, actor=user, reason=body.reason, officer_name=body.officer_name, commit=False)
    for bill_id in bill_ids:
        delete_bill(db, bill_id, commit=False)
    db.commit()
    return None


@router.put("/{asset_id}/items", response_model=Asset)
def update_asset_item_api(
    asset_id: str,
    body: ItemUpdateIn,
    user: UserORM = Depends(require_editor),
    db: Session = Depends(get_db),
):
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)
    return crud.update_asset_item(
        db,
        asset_id,
        body.item_index,
        body.updated_item,
        actor=user,
        reason=body.reason,
        officer_name=body.officer_name,
    )


@router.delete("/{asset_id}/items", response_model=Asset)
def delete_asset_item_api(
    asset_id: str,
    body: ItemDeleteIn,
    user: UserORM = Depends(require_editor),
    db: Session = Depends(get_db),
):
    a = get_asset_or_404(db, asset_id)
    check_asset_access(user, a)
    return crud.delete_asset_item(
        db,
        asset_id,
        body.item_index,
        actor=user,
        reason=body.reason,
        officer_name=body.officer_name,
    )
