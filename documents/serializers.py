from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict

from .kinds import get_kind_spec
from .models import Document


def iso_ms(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds")


def _date(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _money(value: Decimal | None) -> str:
    return str(value if value is not None else Decimal("0"))


def document_to_dict(doc: Document) -> Dict[str, Any]:
    """Wire representation; the client adopts it wholesale as its new baseline."""
    spec = get_kind_spec(doc.kind)
    data: Dict[str, Any] = {
        "id": str(doc.id),
        "kind": doc.kind,
        "number": doc.number,
        "status": doc.status,
        "companyName": doc.company_name,
        "companyAddress": doc.company_address,
        "billTo": doc.bill_to,
        "projectName": doc.project_name,
        "contactPerson": doc.contact_person,
        "productionDate": _date(doc.production_date),
        "notes": doc.notes,
        "totalAmount": int(doc.total_amount or 0),
        "revision": int(doc.revision or 0),
        "createdAt": iso_ms(doc.created_at),
        "modifiedAt": iso_ms(doc.updated_at),
        "updatedAt": iso_ms(doc.updated_at),
        "deletedAt": iso_ms(doc.deleted_at),
        "items": [
            {
                "id": str(item.id),
                "productName": item.product_name,
                "total": int(item.total or 0),
                "details": [
                    {
                        "id": str(d.id),
                        "detail": d.detail,
                        "unitPrice": _money(d.unit_price),
                        "qty": _money(d.qty),
                        "amount": int(d.amount or 0),
                    }
                    for d in item.details.all()
                ],
            }
            for item in doc.items.all()
        ],
        "remarks": [
            {"id": str(r.id), "text": r.text, "isCompleted": bool(r.is_completed)}
            for r in doc.remarks.all()
        ],
    }
    if spec.has_signatures:
        data["signatures"] = [
            {"id": str(s.id), "name": s.name, "position": s.position, "imageRef": s.image_ref}
            for s in doc.signatures.all()
        ]
    return data
