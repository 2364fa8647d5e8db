import csv
import io
from typing import Iterable, Any, Sequence, Callable, Optional
from fastapi.responses import StreamingResponse


def _text(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _particulars(a: Any) -> str:
    items = getattr(a, "items", None) or []
    if items:
        return ", ".join(i.particulars for i in items)
    return _text(getattr(a, "item_name", ""))


def _department_name(a: Any) -> str:
    department = getattr(a, "department", None)
    return _text(getattr(department, "name", "")) if department is not None else ""


ASSET_COLUMNS: list[tuple[str, Callable[[Any], str]]] = [
    ("Date", lambda a: _text(getattr(a, "created_at", None) and a.created_at.date())),
    ("Department", _department_name),
    ("Type", lambda a: _text(a.type)),
    ("College ISR No.", lambda a: _text(a.college_isr_no)),
    ("IT ISR No.", lambda a: _text(a.it_isr_no)),
    ("Particulars", _particulars),
    ("Vendor", lambda a: _text(a.vendor_name or a.vendor)),
    ("Bill Date", lambda a: _text(a.bill_date)),
    ("Bill No.", lambda a: _text(a.bill_no)),
    ("Quantity", lambda a: _text(a.quantity)),
    ("Rate", lambda a: _text(a.price_per_item)),
    ("Amount", lambda a: _text(a.total_amount)),
    ("IGST", lambda a: _text(a.igst)),
    ("CGST", lambda a: _text(a.cgst)),
    ("SGST", lambda a: _text(a.sgst)),
    ("Grand Total", lambda a: _text(a.grand_total)),
    ("Remark", lambda a: _text(a.remark)),
]


def assets_to_csv_response(
    assets: Iterable[Any],
    *,
    filename: str = "assets_report.csv",
    columns: Optional[Sequence[tuple[str, Callable[[Any], str]]]] = None,
) -> StreamingResponse:
    """
    Stream ``assets`` as a CSV download, one row per asset with a leading
    serial number column. Works with ORM rows and pydantic models alike.
    """

    if columns is None:
        columns = ASSET_COLUMNS

    def generate():
        buf = io.StringIO()
        w = csv.writer(buf)

        w.writerow(["Sl No."] + [h for h, _ in columns])
        yield buf.getvalue()
        buf.seek(0)
        buf.truncate(0)

        for n, a in enumerate(assets, start=1):
            w.writerow([n] + [getter(a) for _, getter in columns])
            yield buf.getvalue()
            buf.seek(0)
            buf.truncate(0)

    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(generate(), media_type="text/csv; charset=utf-8", headers=headers)
