from __future__ import annotations

from documents.serializers import iso_ms


def quotation_payload(**overrides):
    data = {
        "companyName": "Northwind Studio",
        "companyAddress": "1 Harbour Road",
        "billTo": "Acme",
        "productionDate": "2025-03-01",
        "items": [
            {
                "productName": "Banner",
                "details": [
                    {"detail": "Print", "unitPrice": "100.00", "qty": "2"},
                    {"detail": "Install", "unitPrice": "50", "qty": "1"},
                ],
            },
        ],
        "remarks": [{"text": "Deliver before noon", "isCompleted": False}],
    }
    data.update(overrides)
    return data


def ticket_payload(**overrides):
    data = {
        "projectName": "Spring Campaign",
        "productionDate": "2025-04-10",
        "items": [{"productName": "Poster", "details": [{"detail": "A2", "unitPrice": "12", "qty": "10"}]}],
    }
    data.update(overrides)
    return data


def stamp(doc) -> str:
    return iso_ms(doc.updated_at)
